"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from hohema_loans.domain.models import ChannelOrigin

# Money travels as a JSON number, not pydantic's default Decimal string
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MessageResponse(CamelModel):
    message: str


class SystemSettingsResponse(CamelModel):
    id: int
    interest_rate_percentage: Money
    admin_fee: Money
    max_loan_percentage: Money
    min_loan_amount: Money
    max_loan_amount: Money
    last_modified_date: datetime
    last_modified_by: Optional[str] = None


class SystemSettingsUpdate(CamelModel):
    """Request body for PUT /api/systemsettings (ranges checked by the domain)"""

    interest_rate_percentage: Decimal
    admin_fee: Decimal
    max_loan_percentage: Decimal
    min_loan_amount: Decimal
    max_loan_amount: Decimal


class InitializeSettingsResponse(CamelModel):
    message: str
    settings: SystemSettingsResponse


class LoanCalculationRequest(CamelModel):
    """Request body for POST /api/systemsettings/calculate"""

    hours_worked: Decimal = Field(..., ge=0)
    hourly_rate: Decimal = Field(..., ge=0)
    requested_amount: Decimal = Field(..., ge=0)


class LoanCalculationResponse(CamelModel):
    monthly_earnings: Money
    max_loan_amount: Money
    approved_loan_amount: Money
    interest_rate: Money
    interest_amount: Money
    admin_fee: Money
    total_repayment: Money
    is_within_limits: bool
    floored_above_earnings_cap: bool


class AffordabilityResponse(CamelModel):
    gross_monthly_income: Money
    net_monthly_income: Money
    total_monthly_expenses: Money
    essential_expenses: Money
    non_essential_expenses: Money
    existing_debt_payments: Money
    debt_to_income_ratio: Money
    available_funds: Money
    expense_to_income_ratio: Money
    affordability_status: str
    assessment_notes: str
    max_recommended_loan_amount: Money
    assessment_date: datetime
    expiry_date: datetime


class MaxLoanResponse(CamelModel):
    max_recommended_loan_amount: Money
    max_affordable_loan_amount: Money
    interest_rate: Money
    term_months: int
    affordability_status: str


class CreateDraftRequest(CamelModel):
    channel_origin: ChannelOrigin = ChannelOrigin.WEB
    phone_number: Optional[str] = None


class ResumeDraftRequest(CamelModel):
    channel: ChannelOrigin
    phone_number: Optional[str] = None


class UpdateStepRequest(CamelModel):
    """Flat body of optional fields; each step validates the ones it needs"""

    amount: Optional[Decimal] = None
    term_months: Optional[int] = None
    purpose: Optional[str] = None
    purpose_description: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_holder_name: Optional[str] = None


class SubmitApplicationRequest(CamelModel):
    otp: Optional[str] = None


class SigningPinRequest(CamelModel):
    phone_number: Optional[str] = None


class SigningPinResponse(CamelModel):
    message: str
    expires_in_minutes: int
    pin: Optional[str] = None  # echoed in development only


class CreateWorkerLoanRequest(CamelModel):
    """Request body for POST /api/loanapplications"""

    hours_worked: Decimal = Field(..., ge=0)
    hourly_rate: Decimal = Field(..., ge=0)
    amount: Decimal = Field(..., gt=0)
    repayment_day: int = Field(..., ge=25, le=31)
    purpose: str = Field(..., min_length=1, max_length=100)


class CreateQuotedLoanRequest(CamelModel):
    """Request body for POST /api/loanapplications/legacy"""

    amount: Decimal = Field(..., gt=0)
    term_months: int = Field(..., gt=0)
    purpose: str = Field(..., min_length=1, max_length=100)
    channel_origin: ChannelOrigin = ChannelOrigin.WEB


class ApproveRequest(CamelModel):
    interest_rate: Decimal = Field(..., description="Annual rate as a percentage, e.g. 12 for 12%")
    repayment_months: int
    notes: Optional[str] = None


class RejectRequest(CamelModel):
    reason: Optional[str] = None


class DisburseRequest(CamelModel):
    notes: Optional[str] = None


class LoanApplicationResponse(CamelModel):
    id: uuid.UUID
    user_id: str
    amount: Money
    term_months: int
    purpose: str
    status: str
    interest_rate: Money
    monthly_payment: Money
    total_amount: Money
    application_date: datetime
    approval_date: Optional[datetime] = None
    notes: Optional[str] = None
    current_step: int
    step_data: Dict[str, Any]
    channel_origin: str
    web_initiated_date: Optional[datetime] = None
    whatsapp_initiated_date: Optional[datetime] = None
    whatsapp_session_id: Optional[uuid.UUID] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_holder_name: Optional[str] = None
    hours_worked: Optional[Money] = None
    hourly_rate: Optional[Money] = None
    monthly_earnings: Optional[Money] = None
    max_loan_amount: Optional[Money] = None
    applied_interest_rate: Optional[Money] = None
    applied_admin_fee: Optional[Money] = None
    repayment_day: Optional[int] = None
    expected_repayment_date: Optional[date] = None
    affordability_status: Optional[str] = None
    passed_affordability_check: Optional[bool] = None