"""Earnings-based loan sizing for hourly workers (single-payment loans)"""

from decimal import Decimal

from hohema_loans.domain.exceptions import InvalidLoanInputError
from hohema_loans.domain.models import LoanCalculationResult, LoanSettings
from hohema_loans.utils.money import to_decimal


def calculate_worker_loan(
    hours_worked,
    hourly_rate,
    requested_amount,
    settings: LoanSettings,
) -> LoanCalculationResult:
    """
    Size a worker loan from monthly earnings and the global settings.

    Clamp order (cap, then floor, then ceiling):
    1. requested amount capped at max_loan_percentage of monthly earnings
    2. floored at settings.min_loan_amount
    3. ceilinged at settings.max_loan_amount

    Because the floor runs after the earnings cap, a low earner can be floored
    above their own earnings-based maximum; floored_above_earnings_cap reports it.

    is_within_limits compares the *requested* amount against the earnings cap.
    """
    hours_worked = to_decimal(hours_worked)
    hourly_rate = to_decimal(hourly_rate)
    requested_amount = to_decimal(requested_amount)

    if hours_worked < 0 or hourly_rate < 0:
        raise InvalidLoanInputError("Hours worked and hourly rate cannot be negative")

    monthly_earnings = hours_worked * hourly_rate
    max_loan_amount = monthly_earnings * (settings.max_loan_percentage / 100)

    loan_amount = min(requested_amount, max_loan_amount)
    loan_amount = max(loan_amount, settings.min_loan_amount)
    loan_amount = min(loan_amount, settings.max_loan_amount)

    interest_amount = loan_amount * (settings.interest_rate_percentage / 100)
    total_repayment = loan_amount + interest_amount + settings.admin_fee

    return LoanCalculationResult(
        monthly_earnings=monthly_earnings,
        max_loan_amount=max_loan_amount,
        approved_loan_amount=loan_amount,
        interest_rate=settings.interest_rate_percentage,
        interest_amount=interest_amount,
        admin_fee=settings.admin_fee,
        total_repayment=total_repayment,
        is_within_limits=requested_amount <= max_loan_amount,
        floored_above_earnings_cap=loan_amount > max_loan_amount,
    )


DEFAULT_LOAN_SETTINGS = LoanSettings(
    interest_rate_percentage=Decimal("5.00"),
    admin_fee=Decimal("50.00"),
    max_loan_percentage=Decimal("20.00"),
    min_loan_amount=Decimal("100.00"),
    max_loan_amount=Decimal("10000.00"),
)


def validate_loan_settings(settings: LoanSettings) -> None:
    """Range checks applied before an admin update is saved"""
    if settings.interest_rate_percentage < 0 or settings.interest_rate_percentage > 100:
        raise InvalidLoanInputError("Interest rate must be between 0 and 100")
    if settings.admin_fee < 0:
        raise InvalidLoanInputError("Admin fee cannot be negative")
    if settings.max_loan_percentage < 1 or settings.max_loan_percentage > 100:
        raise InvalidLoanInputError("Max loan percentage must be between 1 and 100")
    if settings.min_loan_amount < 0 or settings.min_loan_amount >= settings.max_loan_amount:
        raise InvalidLoanInputError("Invalid loan amount range")
