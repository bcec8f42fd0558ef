"""Loan application wizard: steps, per-step payloads and legal moves"""

from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum
from typing import Any, ClassVar, Dict, Union

from hohema_loans.domain.exceptions import InvalidStepDataError, InvalidStepTransitionError
from hohema_loans.domain.loan_terms import MAX_TERM_MONTHS
from hohema_loans.utils.money import to_decimal


class WizardStep(IntEnum):
    LOAN_AMOUNT = 0
    TERM_MONTHS = 1
    PURPOSE = 2
    AFFORDABILITY_REVIEW = 3
    PREVIEW_TERMS = 4
    BANK_DETAILS = 5
    DIGITAL_SIGNATURE = 6


# current_step value once an application has been submitted
COMPLETED_STEP = 7


@dataclass(frozen=True)
class LoanAmountData:
    step: ClassVar[WizardStep] = WizardStep.LOAN_AMOUNT
    amount: Decimal

    def as_step_data(self) -> Dict[str, Any]:
        return {"amount": float(self.amount)}


@dataclass(frozen=True)
class TermMonthsData:
    step: ClassVar[WizardStep] = WizardStep.TERM_MONTHS
    term_months: int

    def as_step_data(self) -> Dict[str, Any]:
        return {"termMonths": self.term_months}


@dataclass(frozen=True)
class PurposeData:
    step: ClassVar[WizardStep] = WizardStep.PURPOSE
    purpose: str
    purpose_description: str | None = None

    def as_step_data(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"purpose": self.purpose}
        if self.purpose_description:
            data["purposeDescription"] = self.purpose_description
        return data


@dataclass(frozen=True)
class AffordabilityReviewData:
    step: ClassVar[WizardStep] = WizardStep.AFFORDABILITY_REVIEW

    def as_step_data(self) -> Dict[str, Any]:
        return {"reviewed": True}


@dataclass(frozen=True)
class PreviewTermsData:
    step: ClassVar[WizardStep] = WizardStep.PREVIEW_TERMS

    def as_step_data(self) -> Dict[str, Any]:
        return {"termsViewed": True}


@dataclass(frozen=True)
class BankDetailsData:
    step: ClassVar[WizardStep] = WizardStep.BANK_DETAILS
    bank_name: str
    account_number: str
    account_holder_name: str

    def as_step_data(self) -> Dict[str, Any]:
        return {
            "bankName": self.bank_name,
            "accountNumber": self.account_number,
            "accountHolderName": self.account_holder_name,
        }


@dataclass(frozen=True)
class DigitalSignatureData:
    step: ClassVar[WizardStep] = WizardStep.DIGITAL_SIGNATURE

    def as_step_data(self) -> Dict[str, Any]:
        return {"signatureRequested": True}


StepPayload = Union[
    LoanAmountData,
    TermMonthsData,
    PurposeData,
    AffordabilityReviewData,
    PreviewTermsData,
    BankDetailsData,
    DigitalSignatureData,
]


def _require(fields: Dict[str, Any], name: str, label: str) -> Any:
    value = fields.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidStepDataError(f"{label} is required")
    return value.strip() if isinstance(value, str) else value


def parse_step_payload(step: WizardStep, fields: Dict[str, Any]) -> StepPayload:
    """
    Validate the fields a step requires and build its typed payload.

    fields uses snake_case keys; unknown keys are ignored here.
    """
    if step == WizardStep.LOAN_AMOUNT:
        amount = to_decimal(_require(fields, "amount", "Loan amount"))
        if amount <= 0:
            raise InvalidStepDataError("Loan amount must be greater than zero")
        return LoanAmountData(amount=amount)

    if step == WizardStep.TERM_MONTHS:
        term = int(_require(fields, "term_months", "Loan term"))
        if term <= 0:
            raise InvalidStepDataError("Loan term must be greater than zero")
        if term > MAX_TERM_MONTHS:
            raise InvalidStepDataError(f"Loan term cannot exceed {MAX_TERM_MONTHS} months")
        return TermMonthsData(term_months=term)

    if step == WizardStep.PURPOSE:
        return PurposeData(
            purpose=_require(fields, "purpose", "Loan purpose"),
            purpose_description=fields.get("purpose_description"),
        )

    if step == WizardStep.BANK_DETAILS:
        return BankDetailsData(
            bank_name=_require(fields, "bank_name", "Bank name"),
            account_number=_require(fields, "account_number", "Account number"),
            account_holder_name=_require(fields, "account_holder_name", "Account holder name"),
        )

    if step == WizardStep.AFFORDABILITY_REVIEW:
        return AffordabilityReviewData()
    if step == WizardStep.PREVIEW_TERMS:
        return PreviewTermsData()
    return DigitalSignatureData()


def to_wizard_step(step_number: int) -> WizardStep:
    try:
        return WizardStep(step_number)
    except ValueError:
        raise InvalidStepTransitionError(f"Unknown wizard step {step_number}") from None


def ensure_step_reachable(current_step: int, target: WizardStep) -> None:
    """Clients may revisit any earlier step or advance by exactly one"""
    if target > current_step + 1:
        raise InvalidStepTransitionError(
            f"Cannot move from step {current_step} to step {int(target)}; complete step {current_step + 1} first"
        )
