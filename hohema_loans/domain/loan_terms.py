"""Amortized loan terms: interest rate quotes, installments and totals"""

from decimal import Decimal

from hohema_loans.domain.exceptions import InvalidLoanInputError
from hohema_loans.domain.models import LoanTerms
from hohema_loans.utils.money import round_currency, to_decimal

BASE_RATE = Decimal("0.12")
LARGE_LOAN_THRESHOLD = Decimal("100000")
LARGE_LOAN_DISCOUNT = Decimal("0.01")
LONG_TERM_THRESHOLD_MONTHS = 24
LONG_TERM_LOADING = Decimal("0.005")
MIN_RATE = Decimal("0.08")
MAX_RATE = Decimal("0.18")
MAX_TERM_MONTHS = 360


def quote_interest_rate(amount, term_months: int) -> Decimal:
    """
    Quote an annual rate for the simple (non-worker) path.

    Heuristic, not a risk model:
    - 12% base
    - -1% for amounts above R100 000
    - +0.5% for terms longer than 24 months
    - clamped to [8%, 18%]
    """
    rate = BASE_RATE

    if to_decimal(amount) > LARGE_LOAN_THRESHOLD:
        rate -= LARGE_LOAN_DISCOUNT
    if term_months > LONG_TERM_THRESHOLD_MONTHS:
        rate += LONG_TERM_LOADING

    return max(MIN_RATE, min(MAX_RATE, rate))


def _validate(annual_rate: Decimal, term_months: int) -> None:
    if term_months <= 0:
        raise InvalidLoanInputError("Loan term must be a positive number of months")
    if term_months > MAX_TERM_MONTHS:
        raise InvalidLoanInputError(f"Loan term cannot exceed {MAX_TERM_MONTHS} months")
    if annual_rate < 0:
        raise InvalidLoanInputError("Interest rate cannot be negative")


def monthly_installment(principal, annual_rate, term_months: int) -> Decimal:
    """
    Standard amortization: PMT = P * r(1+r)^n / ((1+r)^n - 1), r = annual_rate / 12.

    Zero-rate loans repay principal / n exactly (no rounding); otherwise the
    installment is rounded to cents, ties away from zero.
    """
    principal = to_decimal(principal)
    annual_rate = to_decimal(annual_rate)
    _validate(annual_rate, term_months)

    monthly_rate = annual_rate / 12
    if monthly_rate == 0:
        return principal / term_months

    compound = (1 + monthly_rate) ** term_months
    payment = principal * (monthly_rate * compound) / (compound - 1)
    return round_currency(payment)


def principal_for_installment(installment, annual_rate, term_months: int) -> Decimal:
    """Invert the amortization: largest principal serviced by the installment"""
    installment = to_decimal(installment)
    annual_rate = to_decimal(annual_rate)
    _validate(annual_rate, term_months)

    monthly_rate = annual_rate / 12
    if monthly_rate == 0:
        return installment * term_months

    discount_factor = (1 - (1 + monthly_rate) ** -term_months) / monthly_rate
    return installment * discount_factor


def calculate_loan_terms(principal, annual_rate, term_months: int) -> LoanTerms:
    """Installment, total payable and total interest for a fixed-rate loan"""
    principal = to_decimal(principal)
    annual_rate = to_decimal(annual_rate)

    installment = monthly_installment(principal, annual_rate, term_months)
    total_payable = installment * term_months

    return LoanTerms(
        principal=principal,
        annual_rate=annual_rate,
        term_months=term_months,
        monthly_installment=installment,
        total_payable=total_payable,
        total_interest=total_payable - principal,
    )


def quote_loan_terms(principal, term_months: int) -> LoanTerms:
    """Quote a rate for the amount/term and compute the resulting terms"""
    rate = quote_interest_rate(principal, term_months)
    return calculate_loan_terms(principal, rate, term_months)
