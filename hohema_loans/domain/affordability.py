"""Affordability assessment - NCR-style income/expense/debt analysis"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from hohema_loans.domain.exceptions import InvalidLoanInputError
from hohema_loans.domain.loan_terms import MAX_TERM_MONTHS, principal_for_installment
from hohema_loans.domain.models import (
    AffordabilityAssessment,
    AffordabilityStatus,
    ExpenseRecord,
    IncomeRecord,
)
from hohema_loans.utils.money import ZERO, round_currency, to_decimal, to_monthly

DEBT_CATEGORY = "Debt"


@dataclass(frozen=True)
class AffordabilityPolicy:
    """Thresholds applied by the assessment"""

    max_debt_to_income_ratio: Decimal = Decimal("0.35")  # NCR ceiling
    limited_expense_ratio: Decimal = Decimal("0.70")
    reference_annual_rate: Decimal = Decimal("0.11")
    reference_term_months: int = 36
    capacity_fraction: Decimal = Decimal("0.80")
    min_remaining_buffer: Decimal = Decimal("250")
    validity_days: int = 30


DEFAULT_POLICY = AffordabilityPolicy()


def determine_status(
    gross_income: Decimal,
    debt_to_income_ratio: Decimal,
    expense_to_income_ratio: Decimal,
    available_funds: Decimal,
    policy: AffordabilityPolicy = DEFAULT_POLICY,
) -> AffordabilityStatus:
    """
    Classify affordability, evaluated in order:
    - no income                                  -> NotAffordable
    - DTI above NCR ceiling or negative funds    -> NotAffordable
    - expenses above 70% of income               -> LimitedAffordability
    - otherwise                                  -> Affordable
    """
    if gross_income <= 0:
        return AffordabilityStatus.NOT_AFFORDABLE
    if debt_to_income_ratio > policy.max_debt_to_income_ratio or available_funds < 0:
        return AffordabilityStatus.NOT_AFFORDABLE
    if expense_to_income_ratio > policy.limited_expense_ratio:
        return AffordabilityStatus.LIMITED
    return AffordabilityStatus.AFFORDABLE


def max_recommended_loan(
    available_funds: Decimal,
    debt_to_income_ratio: Decimal,
    policy: AffordabilityPolicy = DEFAULT_POLICY,
) -> Decimal:
    """
    Largest principal whose installment fits the available funds.

    Installment capacity is capacity_fraction of available funds, amortized over
    the reference term at the reference rate. Nothing is recommended at or above
    the DTI ceiling.
    """
    if debt_to_income_ratio >= policy.max_debt_to_income_ratio:
        return ZERO

    capacity = available_funds * policy.capacity_fraction
    if capacity <= 0:
        return ZERO

    principal = principal_for_installment(
        capacity, policy.reference_annual_rate, policy.reference_term_months
    )
    return round_currency(max(ZERO, principal))


def _percent(ratio: Decimal) -> str:
    return f"{ratio * 100:.1f}%"


def build_assessment_notes(
    status: AffordabilityStatus,
    debt_to_income_ratio: Decimal,
    expense_to_income_ratio: Decimal,
    available_funds: Decimal,
    essential_expenses: Decimal,
    total_expenses: Decimal,
    policy: AffordabilityPolicy = DEFAULT_POLICY,
) -> str:
    if status == AffordabilityStatus.NOT_AFFORDABLE and debt_to_income_ratio > policy.max_debt_to_income_ratio:
        notes = (
            f"Your debt-to-income ratio of {_percent(debt_to_income_ratio)} exceeds the NCR limit of "
            f"{_percent(policy.max_debt_to_income_ratio)}. Additional credit is unlikely to be approved "
            "until existing debt decreases."
        )
    elif status == AffordabilityStatus.NOT_AFFORDABLE and available_funds < 0:
        notes = (
            "Your monthly expenses exceed your income. "
            "Consider reducing non-essential expenses before applying for a loan."
        )
    elif status == AffordabilityStatus.NOT_AFFORDABLE:
        notes = "No monthly income has been recorded. Add your income sources to be assessed."
    elif status == AffordabilityStatus.LIMITED:
        notes = (
            f"Your expenses use {_percent(expense_to_income_ratio)} of your income. "
            f"A small loan may be considered, with R{round_currency(available_funds)} available monthly."
        )
    else:
        notes = (
            f"Your affordability profile is healthy: R{round_currency(available_funds)} is available monthly "
            f"and your debt-to-income ratio of {_percent(debt_to_income_ratio)} is within NCR guidelines."
        )

    essential_share = essential_expenses / total_expenses if total_expenses > 0 else ZERO
    return f"{notes}\n\nExpense analysis: {_percent(essential_share)} of your expenses are essential."


def calculate_affordability(
    incomes: Iterable[IncomeRecord],
    expenses: Iterable[ExpenseRecord],
    existing_loan_payments: Decimal,
    now: datetime,
    policy: AffordabilityPolicy = DEFAULT_POLICY,
) -> AffordabilityAssessment:
    """
    Main entry point: aggregate incomes/expenses into an affordability snapshot.

    Net income equals gross (no tax model). Existing debt is the "Debt" expense
    category plus installments on the user's active loans. With no income all
    ratios are zero and the status resolves to NotAffordable.
    """
    incomes = list(incomes)
    expenses = list(expenses)

    gross_income = sum((to_monthly(i.monthly_amount, i.frequency) for i in incomes), ZERO)
    net_income = gross_income

    essential = sum(
        (to_monthly(e.monthly_amount, e.frequency) for e in expenses if e.is_essential), ZERO
    )
    non_essential = sum(
        (to_monthly(e.monthly_amount, e.frequency) for e in expenses if not e.is_essential), ZERO
    )
    total_expenses = essential + non_essential

    debt_expenses = sum(
        (to_monthly(e.monthly_amount, e.frequency) for e in expenses if e.category == DEBT_CATEGORY),
        ZERO,
    )
    existing_debt = debt_expenses + to_decimal(existing_loan_payments)

    if gross_income > 0:
        debt_to_income = existing_debt / gross_income
        expense_to_income = total_expenses / gross_income
    else:
        debt_to_income = ZERO
        expense_to_income = ZERO

    available_funds = net_income - total_expenses

    status = determine_status(gross_income, debt_to_income, expense_to_income, available_funds, policy)
    max_loan = max_recommended_loan(available_funds, debt_to_income, policy)

    return AffordabilityAssessment(
        gross_monthly_income=gross_income,
        net_monthly_income=net_income,
        total_monthly_expenses=total_expenses,
        essential_expenses=essential,
        non_essential_expenses=non_essential,
        existing_debt_payments=existing_debt,
        debt_to_income_ratio=debt_to_income,
        available_funds=available_funds,
        expense_to_income_ratio=expense_to_income,
        affordability_status=status,
        max_recommended_loan_amount=max_loan,
        assessment_notes=build_assessment_notes(
            status, debt_to_income, expense_to_income, available_funds, essential, total_expenses, policy
        ),
        assessment_date=now,
        expiry_date=now + timedelta(days=policy.validity_days),
    )


def can_afford_loan(
    assessment: AffordabilityAssessment,
    monthly_payment,
    policy: AffordabilityPolicy = DEFAULT_POLICY,
) -> bool:
    """Check a proposed installment against the DTI ceiling and remaining funds"""
    monthly_payment = to_decimal(monthly_payment)

    if assessment.affordability_status == AffordabilityStatus.NOT_AFFORDABLE:
        return False

    if assessment.gross_monthly_income <= 0:
        return False

    new_ratio = (assessment.existing_debt_payments + monthly_payment) / assessment.gross_monthly_income
    if new_ratio > policy.max_debt_to_income_ratio:
        return False

    if monthly_payment > assessment.available_funds:
        return False

    return assessment.available_funds - monthly_payment >= policy.min_remaining_buffer


def max_affordable_loan(
    assessment: AffordabilityAssessment,
    annual_rate,
    term_months: int,
    policy: AffordabilityPolicy = DEFAULT_POLICY,
) -> Decimal:
    """
    Largest principal affordable at a given rate and term.

    Payment capacity is the lesser of capacity_fraction of available funds and
    the headroom left under the DTI ceiling.
    """
    if term_months <= 0:
        raise InvalidLoanInputError("Loan term must be a positive number of months")
    if term_months > MAX_TERM_MONTHS:
        raise InvalidLoanInputError(f"Loan term cannot exceed {MAX_TERM_MONTHS} months")

    if assessment.affordability_status == AffordabilityStatus.NOT_AFFORDABLE:
        return ZERO

    capacity = min(
        assessment.available_funds * policy.capacity_fraction,
        assessment.gross_monthly_income * policy.max_debt_to_income_ratio
        - assessment.existing_debt_payments,
    )
    if capacity <= 0:
        return ZERO

    return round_currency(principal_for_installment(capacity, annual_rate, term_months))
