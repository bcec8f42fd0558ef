"""Data access layer for loan origination entities"""

import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session
from hohema_loans.infrastructure.database.models import (
    AffordabilityAssessmentRecord,
    Expense,
    Income,
    LoanApplication,
    SystemSettingsRecord,
    WhatsAppSession,
)
from hohema_loans.domain.models import (
    AffordabilityAssessment,
    ExpenseRecord,
    IncomeRecord,
    LoanSettings,
    LoanStatus,
)
from hohema_loans.domain.wizard import WizardStep
from hohema_loans.domain.worker_loans import DEFAULT_LOAN_SETTINGS
from hohema_loans.utils.date_utils import utcnow


class ProfileRepository:
    """Repository for a user's declared incomes and expenses"""

    def __init__(self, db: Session):
        self.db = db

    def get_incomes(self, user_id: str) -> List[IncomeRecord]:
        rows = self.db.query(Income).filter(Income.user_id == user_id).all()
        return [
            IncomeRecord(
                source_type=row.source_type,
                monthly_amount=row.monthly_amount,
                frequency=row.frequency,
                description=row.description,
            )
            for row in rows
        ]

    def get_expenses(self, user_id: str) -> List[ExpenseRecord]:
        rows = self.db.query(Expense).filter(Expense.user_id == user_id).all()
        return [
            ExpenseRecord(
                category=row.category,
                monthly_amount=row.monthly_amount,
                is_essential=row.is_essential,
                frequency=row.frequency,
                description=row.description,
                is_fixed=row.is_fixed,
            )
            for row in rows
        ]


class AssessmentRepository:
    """Repository for affordability snapshots (latest only, one row per user)"""

    def __init__(self, db: Session):
        self.db = db

    def get_for_user(self, user_id: str) -> Optional[AffordabilityAssessmentRecord]:
        return (
            self.db.query(AffordabilityAssessmentRecord)
            .filter(AffordabilityAssessmentRecord.user_id == user_id)
            .first()
        )

    def upsert(self, user_id: str, assessment: AffordabilityAssessment) -> AffordabilityAssessmentRecord:
        """Overwrite the user's snapshot in place, creating it on first use"""
        record = self.get_for_user(user_id)
        if record is None:
            record = AffordabilityAssessmentRecord(user_id=user_id)
            self.db.add(record)

        record.gross_monthly_income = assessment.gross_monthly_income
        record.net_monthly_income = assessment.net_monthly_income
        record.total_monthly_expenses = assessment.total_monthly_expenses
        record.essential_expenses = assessment.essential_expenses
        record.non_essential_expenses = assessment.non_essential_expenses
        record.existing_debt_payments = assessment.existing_debt_payments
        record.debt_to_income_ratio = assessment.debt_to_income_ratio
        record.available_funds = assessment.available_funds
        record.expense_to_income_ratio = assessment.expense_to_income_ratio
        record.affordability_status = assessment.affordability_status.value
        record.assessment_notes = assessment.assessment_notes
        record.max_recommended_loan_amount = assessment.max_recommended_loan_amount
        record.assessment_date = assessment.assessment_date
        record.expiry_date = assessment.expiry_date

        self.db.flush()
        return record


class LoanApplicationRepository:
    """Repository for loan applications"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, application: LoanApplication) -> LoanApplication:
        self.db.add(application)
        self.db.flush()  # Get ID without committing
        return application

    def get_by_id(self, application_id: uuid.UUID) -> Optional[LoanApplication]:
        return self.db.query(LoanApplication).filter(LoanApplication.id == application_id).first()

    def get_for_user(self, application_id: uuid.UUID, user_id: str) -> Optional[LoanApplication]:
        return (
            self.db.query(LoanApplication)
            .filter(LoanApplication.id == application_id, LoanApplication.user_id == user_id)
            .first()
        )

    def list_for_user(self, user_id: str) -> List[LoanApplication]:
        return (
            self.db.query(LoanApplication)
            .filter(LoanApplication.user_id == user_id)
            .order_by(LoanApplication.application_date.desc())
            .all()
        )

    def latest_draft(self, user_id: str) -> Optional[LoanApplication]:
        return (
            self.db.query(LoanApplication)
            .filter(
                LoanApplication.user_id == user_id,
                LoanApplication.status == LoanStatus.DRAFT.value,
            )
            .order_by(LoanApplication.application_date.desc())
            .first()
        )

    def active_installments_total(self, user_id: str) -> Decimal:
        """Sum of monthly payments on the user's approved or disbursed loans"""
        total = (
            self.db.query(func.coalesce(func.sum(LoanApplication.monthly_payment), 0))
            .filter(
                LoanApplication.user_id == user_id,
                LoanApplication.status.in_([LoanStatus.APPROVED.value, LoanStatus.DISBURSED.value]),
            )
            .scalar()
        )
        return Decimal(str(total))


class ApplicationStepStore:
    """Persists wizard progress (current step and per-step data) on an application row"""

    def __init__(self, db: Session):
        self.db = db

    def get_progress(self, application: LoanApplication) -> Tuple[int, Dict[str, Any]]:
        return application.current_step, dict(application.step_data or {})

    def record_step(self, application: LoanApplication, step: WizardStep, data: Dict[str, Any]) -> None:
        """Merge data into step_data[step] and move the cursor to step"""
        step_data = dict(application.step_data or {})
        merged = dict(step_data.get(str(int(step)), {}))
        merged.update(data)
        step_data[str(int(step))] = merged

        # JSON columns only persist on reassignment
        application.step_data = step_data
        application.current_step = int(step)
        self.db.flush()

    def mark_completed(self, application: LoanApplication, completed_step: int) -> None:
        application.current_step = completed_step
        self.db.flush()


class SettingsRepository:
    """Repository for the system settings singleton"""

    def __init__(self, db: Session):
        self.db = db

    def get(self) -> Optional[SystemSettingsRecord]:
        return self.db.query(SystemSettingsRecord).order_by(SystemSettingsRecord.id).first()

    def create_default(self, modified_by: str | None = None) -> SystemSettingsRecord:
        record = SystemSettingsRecord(
            interest_rate_percentage=DEFAULT_LOAN_SETTINGS.interest_rate_percentage,
            admin_fee=DEFAULT_LOAN_SETTINGS.admin_fee,
            max_loan_percentage=DEFAULT_LOAN_SETTINGS.max_loan_percentage,
            min_loan_amount=DEFAULT_LOAN_SETTINGS.min_loan_amount,
            max_loan_amount=DEFAULT_LOAN_SETTINGS.max_loan_amount,
            last_modified_date=utcnow(),
            last_modified_by=modified_by,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def get_or_create(self) -> SystemSettingsRecord:
        return self.get() or self.create_default()

    @staticmethod
    def to_domain(record: SystemSettingsRecord) -> LoanSettings:
        return LoanSettings(
            interest_rate_percentage=record.interest_rate_percentage,
            admin_fee=record.admin_fee,
            max_loan_percentage=record.max_loan_percentage,
            min_loan_amount=record.min_loan_amount,
            max_loan_amount=record.max_loan_amount,
        )


class WhatsAppSessionRepository:
    """Repository for WhatsApp-channel sessions"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, phone_number: str, user_id: str, draft_application_id: uuid.UUID, notes: str | None = None) -> WhatsAppSession:
        now = utcnow()
        session = WhatsAppSession(
            phone_number=phone_number,
            user_id=user_id,
            draft_application_id=draft_application_id,
            session_status="Active",
            created_at=now,
            last_updated_at=now,
            notes=notes,
        )
        self.db.add(session)
        self.db.flush()
        return session

    def get_by_id(self, session_id: uuid.UUID) -> Optional[WhatsAppSession]:
        return self.db.query(WhatsAppSession).filter(WhatsAppSession.id == session_id).first()
