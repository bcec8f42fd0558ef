"""SQLAlchemy ORM models for the loan origination store"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Date, Integer, Numeric, ForeignKey, Text, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base

from hohema_loans.utils.date_utils import utcnow

Base = declarative_base()

Money = Numeric(18, 2)
Ratio = Numeric(18, 4)


class Income(Base):
    """Declared income source"""

    __tablename__ = "income"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    source_type = Column(String(100), nullable=False)
    description = Column(String(200), nullable=False, default="")
    monthly_amount = Column(Money, nullable=False)
    frequency = Column(String(50), nullable=True, default="Monthly")
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Expense(Base):
    """Declared expense"""

    __tablename__ = "expense"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    category = Column(String(100), nullable=False)
    description = Column(String(200), nullable=False, default="")
    monthly_amount = Column(Money, nullable=False)
    frequency = Column(String(50), nullable=True, default="Monthly")
    is_essential = Column(Boolean, nullable=False, default=False)
    is_fixed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class AffordabilityAssessmentRecord(Base):
    """Latest affordability snapshot, one row per user"""

    __tablename__ = "affordability_assessment"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, unique=True, index=True)
    gross_monthly_income = Column(Money, nullable=False)
    net_monthly_income = Column(Money, nullable=False)
    total_monthly_expenses = Column(Money, nullable=False)
    essential_expenses = Column(Money, nullable=False)
    non_essential_expenses = Column(Money, nullable=False)
    existing_debt_payments = Column(Money, nullable=False)
    debt_to_income_ratio = Column(Ratio, nullable=False)
    available_funds = Column(Money, nullable=False)
    expense_to_income_ratio = Column(Ratio, nullable=False)
    affordability_status = Column(String(50), nullable=False)
    assessment_notes = Column(Text, nullable=False, default="")
    max_recommended_loan_amount = Column(Money, nullable=False)
    assessment_method = Column(String(50), nullable=False, default="NCR_Compliant")
    assessment_date = Column(DateTime(timezone=True), nullable=False)
    expiry_date = Column(DateTime(timezone=True), nullable=False)


class LoanApplication(Base):
    """Loan application, mutated step by step by the wizard"""

    __tablename__ = "loan_application"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    amount = Column(Money, nullable=False, default=0)
    term_months = Column(Integer, nullable=False, default=0)
    purpose = Column(String(100), nullable=False, default="")
    status = Column(String(20), nullable=False, default="Draft", index=True)
    interest_rate = Column(Ratio, nullable=False, default=0)
    monthly_payment = Column(Money, nullable=False, default=0)
    total_amount = Column(Money, nullable=False, default=0)
    application_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    approval_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    # Wizard progress
    current_step = Column(Integer, nullable=False, default=0)
    step_data = Column(JSON, nullable=False, default=dict)

    # Channels
    channel_origin = Column(String(20), nullable=False, default="Web")
    web_initiated_date = Column(DateTime(timezone=True), nullable=True)
    whatsapp_initiated_date = Column(DateTime(timezone=True), nullable=True)
    whatsapp_session_id = Column(UUID(as_uuid=True), nullable=True)

    # Disbursement account
    bank_name = Column(String(100), nullable=True)
    account_number = Column(String(50), nullable=True)
    account_holder_name = Column(String(200), nullable=True)

    # Worker (earnings-based) loans
    hours_worked = Column(Numeric(10, 2), nullable=True)
    hourly_rate = Column(Money, nullable=True)
    monthly_earnings = Column(Money, nullable=True)
    max_loan_amount = Column(Money, nullable=True)
    applied_interest_rate = Column(Numeric(5, 2), nullable=True)
    applied_admin_fee = Column(Money, nullable=True)
    repayment_day = Column(Integer, nullable=True)
    expected_repayment_date = Column(Date, nullable=True)

    # Affordability at time of application
    affordability_status = Column(String(50), nullable=True)
    passed_affordability_check = Column(Boolean, nullable=True)


class SystemSettingsRecord(Base):
    """Global lending configuration (singleton row)"""

    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    interest_rate_percentage = Column(Numeric(5, 2), nullable=False, default=5)
    admin_fee = Column(Money, nullable=False, default=50)
    max_loan_percentage = Column(Numeric(5, 2), nullable=False, default=20)
    min_loan_amount = Column(Money, nullable=False, default=100)
    max_loan_amount = Column(Money, nullable=False, default=10000)
    last_modified_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_modified_by = Column(Text, nullable=True)


class WhatsAppSession(Base):
    """In-progress WhatsApp-channel conversation for a draft application"""

    __tablename__ = "whatsapp_session"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    phone_number = Column(String(20), nullable=False, index=True)
    user_id = Column(Text, nullable=False, index=True)
    draft_application_id = Column(
        UUID(as_uuid=True), ForeignKey("loan_application.id", ondelete="SET NULL"), nullable=True
    )
    session_status = Column(String(20), nullable=False, default="Active")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_updated_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(String(500), nullable=True)


class PinCode(Base):
    """Hashed one-time PIN shared across service instances"""

    __tablename__ = "pin_code"

    key = Column(String(200), primary_key=True)
    pin_hash = Column(String(128), nullable=False)
    salt = Column(String(64), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
