"""Loan applications across the Web and WhatsApp channels.

Drafts are created on either channel, advanced step by step through the
wizard, signed with a one-time PIN and submitted for review. Admin decisions
(approve, reject, disburse) go through the status machine.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from hohema_loans.config import settings
from hohema_loans.domain.affordability import can_afford_loan
from hohema_loans.domain.exceptions import (
    ApplicationNotFoundError,
    InvalidLoanInputError,
    InvalidStateTransitionError,
    InvalidStepDataError,
    PinVerificationError,
    SettingsNotConfiguredError,
)
from hohema_loans.domain.loan_status import ensure_transition
from hohema_loans.domain.loan_terms import MAX_TERM_MONTHS, calculate_loan_terms, quote_loan_terms
from hohema_loans.domain.models import ChannelOrigin, LoanStatus, LoanTerms, SessionStatus
from hohema_loans.domain.wizard import (
    COMPLETED_STEP,
    WizardStep,
    ensure_step_reachable,
    parse_step_payload,
    to_wizard_step,
)
from hohema_loans.domain.worker_loans import calculate_worker_loan
from hohema_loans.infrastructure.cache.pin_store import PinStore
from hohema_loans.infrastructure.database.models import LoanApplication
from hohema_loans.infrastructure.database.repositories import (
    ApplicationStepStore,
    LoanApplicationRepository,
    SettingsRepository,
    WhatsAppSessionRepository,
)
from hohema_loans.services.affordability import assess_user, policy_from_settings
from hohema_loans.utils.date_utils import next_month_repayment_date, utcnow
from hohema_loans.utils.money import to_decimal

logger = logging.getLogger(__name__)

# Typed application fields a step update may carry, with their step_data keys
_STEP_FIELDS = {
    "amount": "amount",
    "term_months": "termMonths",
    "purpose": "purpose",
    "purpose_description": "purposeDescription",
    "bank_name": "bankName",
    "account_number": "accountNumber",
    "account_holder_name": "accountHolderName",
}


def signature_pin_key(application_id: uuid.UUID) -> str:
    return f"loan-signature:{application_id}"


def apply_terms(application: LoanApplication, terms: LoanTerms) -> None:
    application.interest_rate = terms.annual_rate
    application.monthly_payment = terms.monthly_installment
    application.total_amount = terms.total_payable


class LoanApplicationService:
    """Unit-of-work scoped service; callers commit or roll back the session"""

    def __init__(
        self,
        db: Session,
        pin_store: PinStore | None = None,
        require_submission_otp: bool | None = None,
    ):
        self.db = db
        self.pin_store = pin_store
        self.require_submission_otp = (
            settings.require_submission_otp if require_submission_otp is None else require_submission_otp
        )
        self.applications = LoanApplicationRepository(db)
        self.steps = ApplicationStepStore(db)
        self.sessions = WhatsAppSessionRepository(db)

    def get(self, application_id: uuid.UUID, user_id: str) -> LoanApplication:
        application = self.applications.get_for_user(application_id, user_id)
        if application is None:
            raise ApplicationNotFoundError("Loan application not found")
        return application

    def list_for_user(self, user_id: str) -> List[LoanApplication]:
        return self.applications.list_for_user(user_id)

    def create_draft(
        self,
        user_id: str,
        channel: ChannelOrigin,
        phone_number: str | None = None,
    ) -> LoanApplication:
        """Start a Draft at step 0; WhatsApp drafts with a phone number get a session"""
        now = utcnow()
        application = LoanApplication(
            id=uuid.uuid4(),
            user_id=user_id,
            amount=Decimal("0"),
            term_months=0,
            purpose="",
            status=LoanStatus.DRAFT.value,
            interest_rate=Decimal("0"),
            monthly_payment=Decimal("0"),
            total_amount=Decimal("0"),
            application_date=now,
            channel_origin=channel.value,
            current_step=int(WizardStep.LOAN_AMOUNT),
            step_data={},
        )

        if channel == ChannelOrigin.WEB:
            application.web_initiated_date = now
        else:
            application.whatsapp_initiated_date = now

        self.applications.add(application)

        if channel == ChannelOrigin.WHATSAPP and phone_number:
            session = self.sessions.create(phone_number, user_id, application.id)
            application.whatsapp_session_id = session.id

        logger.info("Draft application %s created via %s for user %s", application.id, channel.value, user_id)
        return application

    def resume(
        self,
        user_id: str,
        channel: ChannelOrigin,
        phone_number: str | None = None,
    ) -> Optional[LoanApplication]:
        """Continue the user's latest draft on another channel"""
        application = self.applications.latest_draft(user_id)
        if application is None:
            return None

        now = utcnow()
        if channel == ChannelOrigin.WEB and application.web_initiated_date is None:
            application.web_initiated_date = now
        elif channel == ChannelOrigin.WHATSAPP:
            if application.whatsapp_initiated_date is None:
                application.whatsapp_initiated_date = now

            if phone_number:
                session = (
                    self.sessions.get_by_id(application.whatsapp_session_id)
                    if application.whatsapp_session_id
                    else None
                )
                if session is None:
                    session = self.sessions.create(
                        phone_number,
                        user_id,
                        application.id,
                        notes=f"Resumed from {application.channel_origin}",
                    )
                    application.whatsapp_session_id = session.id
                else:
                    session.session_status = SessionStatus.ACTIVE.value
                    session.last_updated_at = now

        self.db.flush()
        logger.info("Application %s resumed on %s", application.id, channel.value)
        return application

    def update_step(
        self,
        application_id: uuid.UUID,
        user_id: str,
        step_number: int,
        fields: Dict[str, Any],
    ) -> LoanApplication:
        """
        Save one wizard step.

        - the step's required fields are validated into its typed payload
        - any typed field present is copied onto the application, whatever the step
        - terms are re-quoted whenever amount and term are both known
        - the affordability review step refreshes the user's assessment
        """
        application = self.get(application_id, user_id)
        if application.status != LoanStatus.DRAFT.value:
            raise InvalidStateTransitionError("Only draft applications can be updated")

        step = to_wizard_step(step_number)
        current_step, _ = self.steps.get_progress(application)
        ensure_step_reachable(current_step, step)

        payload = parse_step_payload(step, fields)
        applied = self._apply_fields(application, fields)
        self.steps.record_step(application, step, {**applied, **payload.as_step_data()})

        if application.amount > 0 and application.term_months > 0:
            apply_terms(application, quote_loan_terms(application.amount, application.term_months))

        if step == WizardStep.AFFORDABILITY_REVIEW:
            assessment, _ = assess_user(self.db, user_id)
            application.affordability_status = assessment.affordability_status.value

        self.db.flush()
        logger.info("Application %s updated to step %s", application.id, step.name)
        return application

    def _apply_fields(self, application: LoanApplication, fields: Dict[str, Any]) -> Dict[str, Any]:
        applied: Dict[str, Any] = {}

        for name, key in _STEP_FIELDS.items():
            value = fields.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                continue

            if name == "amount":
                value = to_decimal(value)
                if value <= 0:
                    raise InvalidStepDataError("Loan amount must be greater than zero")
                application.amount = value
                applied[key] = float(value)
            elif name == "term_months":
                value = int(value)
                if value <= 0:
                    raise InvalidStepDataError("Loan term must be greater than zero")
                if value > MAX_TERM_MONTHS:
                    raise InvalidStepDataError(f"Loan term cannot exceed {MAX_TERM_MONTHS} months")
                application.term_months = value
                applied[key] = value
            elif name == "purpose_description":
                applied[key] = value
            else:
                value = value.strip()
                setattr(application, name, value)
                applied[key] = value

        return applied

    def request_signature_pin(self, application_id: uuid.UUID, user_id: str) -> str:
        """Issue the one-time PIN that signs and submits a draft"""
        application = self.get(application_id, user_id)
        if application.status != LoanStatus.DRAFT.value:
            raise InvalidStateTransitionError("Only draft applications can be signed")
        return self._pin_store().issue(signature_pin_key(application.id))

    def submit(self, application_id: uuid.UUID, user_id: str, otp: str | None) -> LoanApplication:
        application = self.get(application_id, user_id)
        if application.status != LoanStatus.DRAFT.value:
            raise InvalidStateTransitionError("Only draft applications can be submitted")

        self._validate_for_submission(application)

        if self.require_submission_otp:
            if not otp:
                raise PinVerificationError("Signing PIN is required")
            self._pin_store().verify(signature_pin_key(application.id), otp)

        if application.interest_rate == 0 or application.monthly_payment == 0:
            apply_terms(application, quote_loan_terms(application.amount, application.term_months))

        ensure_transition(LoanStatus(application.status), LoanStatus.PENDING)
        application.status = LoanStatus.PENDING.value
        application.application_date = utcnow()
        self.steps.mark_completed(application, COMPLETED_STEP)

        if application.whatsapp_session_id:
            session = self.sessions.get_by_id(application.whatsapp_session_id)
            if session is not None:
                session.session_status = SessionStatus.COMPLETED.value
                session.completed_at = utcnow()

        self.db.flush()
        logger.info("Application %s submitted", application.id)
        return application

    @staticmethod
    def _validate_for_submission(application: LoanApplication) -> None:
        if not application.amount or application.amount <= 0:
            raise InvalidStepDataError("Loan amount is required")
        if not application.term_months or application.term_months <= 0:
            raise InvalidStepDataError("Loan term is required")
        if not application.purpose:
            raise InvalidStepDataError("Loan purpose is required")
        if not (application.bank_name and application.account_number and application.account_holder_name):
            raise InvalidStepDataError("Bank details are required")

    def _pin_store(self) -> PinStore:
        if self.pin_store is None:
            raise RuntimeError("LoanApplicationService requires a pin_store for signing")
        return self.pin_store

    def create_worker_loan(
        self,
        user_id: str,
        hours_worked: Decimal,
        hourly_rate: Decimal,
        requested_amount: Decimal,
        repayment_day: int,
        purpose: str,
    ) -> LoanApplication:
        """
        Create a single-payment worker loan sized from earnings.

        A failed affordability check is recorded on the application rather than
        blocking it; an admin can still approve.
        """
        settings_record = SettingsRepository(self.db).get()
        if settings_record is None:
            raise SettingsNotConfiguredError("System settings not configured")

        result = calculate_worker_loan(
            hours_worked, hourly_rate, requested_amount, SettingsRepository.to_domain(settings_record)
        )

        assessment, _ = assess_user(self.db, user_id)
        passed = can_afford_loan(assessment, result.total_repayment, policy_from_settings())
        if not passed:
            logger.warning(
                "User %s failed affordability check for %s (status %s)",
                user_id,
                result.approved_loan_amount,
                assessment.affordability_status.value,
            )

        now = utcnow()
        application = LoanApplication(
            id=uuid.uuid4(),
            user_id=user_id,
            amount=result.approved_loan_amount,
            term_months=1,
            purpose=purpose,
            status=LoanStatus.PENDING.value,
            interest_rate=result.interest_rate / 100,
            monthly_payment=result.total_repayment,
            total_amount=result.total_repayment,
            application_date=now,
            channel_origin=ChannelOrigin.WEB.value,
            web_initiated_date=now,
            current_step=COMPLETED_STEP,
            step_data={},
            hours_worked=to_decimal(hours_worked),
            hourly_rate=to_decimal(hourly_rate),
            monthly_earnings=result.monthly_earnings,
            max_loan_amount=result.max_loan_amount,
            applied_interest_rate=result.interest_rate,
            applied_admin_fee=result.admin_fee,
            repayment_day=repayment_day,
            expected_repayment_date=next_month_repayment_date(now.date(), repayment_day),
            affordability_status=assessment.affordability_status.value,
            passed_affordability_check=passed,
        )
        return self.applications.add(application)

    def create_quoted_loan(
        self,
        user_id: str,
        amount: Decimal,
        term_months: int,
        purpose: str,
        channel: ChannelOrigin = ChannelOrigin.WEB,
    ) -> LoanApplication:
        """Create a Pending application with a quoted rate (simple path)"""
        terms = quote_loan_terms(amount, term_months)
        now = utcnow()
        application = LoanApplication(
            id=uuid.uuid4(),
            user_id=user_id,
            amount=to_decimal(amount),
            term_months=term_months,
            purpose=purpose,
            status=LoanStatus.PENDING.value,
            application_date=now,
            channel_origin=channel.value,
            web_initiated_date=now if channel == ChannelOrigin.WEB else None,
            whatsapp_initiated_date=now if channel == ChannelOrigin.WHATSAPP else None,
            current_step=COMPLETED_STEP,
            step_data={},
        )
        apply_terms(application, terms)
        return self.applications.add(application)

    def _get_any(self, application_id: uuid.UUID) -> LoanApplication:
        application = self.applications.get_by_id(application_id)
        if application is None:
            raise ApplicationNotFoundError("Loan application not found")
        return application

    def approve(
        self,
        application_id: uuid.UUID,
        interest_rate_percent: Decimal,
        repayment_months: int,
        notes: str | None = None,
    ) -> LoanApplication:
        """Approve a Pending application, re-amortizing at the admin's rate and term"""
        application = self._get_any(application_id)
        ensure_transition(LoanStatus(application.status), LoanStatus.APPROVED)

        interest_rate_percent = to_decimal(interest_rate_percent)
        if interest_rate_percent < 0 or interest_rate_percent > 100:
            raise InvalidLoanInputError("Interest rate must be between 0 and 100")
        if repayment_months <= 0:
            raise InvalidLoanInputError("Repayment months must be greater than zero")

        application.term_months = repayment_months
        apply_terms(
            application,
            calculate_loan_terms(application.amount, interest_rate_percent / 100, repayment_months),
        )
        application.status = LoanStatus.APPROVED.value
        application.approval_date = utcnow()
        application.notes = notes

        self.db.flush()
        return application

    def reject(self, application_id: uuid.UUID, reason: str | None = None) -> LoanApplication:
        application = self._get_any(application_id)
        ensure_transition(LoanStatus(application.status), LoanStatus.REJECTED)

        application.status = LoanStatus.REJECTED.value
        application.notes = reason
        application.approval_date = utcnow()

        self.db.flush()
        return application

    def disburse(self, application_id: uuid.UUID, notes: str | None = None) -> LoanApplication:
        application = self._get_any(application_id)
        ensure_transition(LoanStatus(application.status), LoanStatus.DISBURSED)

        application.status = LoanStatus.DISBURSED.value
        if notes:
            application.notes = f"{application.notes}\nDisbursement: {notes}" if application.notes else f"Disbursement: {notes}"

        self.db.flush()
        return application
