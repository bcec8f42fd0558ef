"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class LoanStatus(str, Enum):
    DRAFT = "Draft"
    PENDING = "Pending"
    UNDER_REVIEW = "UnderReview"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    DISBURSED = "Disbursed"
    CLOSED = "Closed"


class ChannelOrigin(str, Enum):
    WEB = "Web"
    WHATSAPP = "WhatsApp"


class AffordabilityStatus(str, Enum):
    AFFORDABLE = "Affordable"
    LIMITED = "LimitedAffordability"
    NOT_AFFORDABLE = "NotAffordable"


class SessionStatus(str, Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    ABANDONED = "Abandoned"


@dataclass
class IncomeRecord:
    """Declared income source"""

    source_type: str
    monthly_amount: Decimal
    frequency: str | None = "Monthly"
    description: str = ""


@dataclass
class ExpenseRecord:
    """Declared monthly expense"""

    category: str
    monthly_amount: Decimal
    is_essential: bool = False
    frequency: str | None = "Monthly"
    description: str = ""
    is_fixed: bool = False


@dataclass
class AffordabilityAssessment:
    """Point-in-time affordability snapshot for a user"""

    gross_monthly_income: Decimal
    net_monthly_income: Decimal
    total_monthly_expenses: Decimal
    essential_expenses: Decimal
    non_essential_expenses: Decimal
    existing_debt_payments: Decimal
    debt_to_income_ratio: Decimal
    available_funds: Decimal
    expense_to_income_ratio: Decimal
    affordability_status: AffordabilityStatus
    max_recommended_loan_amount: Decimal
    assessment_notes: str
    assessment_date: datetime
    expiry_date: datetime


@dataclass
class LoanTerms:
    """Amortized repayment terms"""

    principal: Decimal
    annual_rate: Decimal
    term_months: int
    monthly_installment: Decimal
    total_payable: Decimal
    total_interest: Decimal


@dataclass
class LoanSettings:
    """Global lending configuration (the system settings singleton)"""

    interest_rate_percentage: Decimal
    admin_fee: Decimal
    max_loan_percentage: Decimal
    min_loan_amount: Decimal
    max_loan_amount: Decimal


@dataclass
class LoanCalculationResult:
    """Output of the earnings-based worker loan calculation"""

    monthly_earnings: Decimal
    max_loan_amount: Decimal
    approved_loan_amount: Decimal
    interest_rate: Decimal
    interest_amount: Decimal
    admin_fee: Decimal
    total_repayment: Decimal
    is_within_limits: bool
    floored_above_earnings_cap: bool
