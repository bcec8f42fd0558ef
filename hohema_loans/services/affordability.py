"""Affordability orchestration: load a user's profile, assess, persist the snapshot"""

import logging
from datetime import datetime
from typing import Tuple

from sqlalchemy.orm import Session

from hohema_loans.config import Settings, settings
from hohema_loans.domain.affordability import AffordabilityPolicy, calculate_affordability
from hohema_loans.domain.models import AffordabilityAssessment
from hohema_loans.infrastructure.database.models import AffordabilityAssessmentRecord
from hohema_loans.infrastructure.database.repositories import (
    AssessmentRepository,
    LoanApplicationRepository,
    ProfileRepository,
)
from hohema_loans.utils.date_utils import utcnow

logger = logging.getLogger(__name__)


def policy_from_settings(config: Settings = settings) -> AffordabilityPolicy:
    return AffordabilityPolicy(
        max_debt_to_income_ratio=config.max_debt_to_income_ratio,
        limited_expense_ratio=config.limited_expense_ratio,
        reference_annual_rate=config.reference_annual_rate,
        reference_term_months=config.reference_term_months,
        capacity_fraction=config.affordability_capacity_fraction,
        min_remaining_buffer=config.min_remaining_buffer,
        validity_days=config.assessment_validity_days,
    )


def assess_user(
    db: Session,
    user_id: str,
    now: datetime | None = None,
    policy: AffordabilityPolicy | None = None,
) -> Tuple[AffordabilityAssessment, AffordabilityAssessmentRecord]:
    """
    Recompute the user's affordability from scratch and overwrite their snapshot.

    Always recomputes: the stored row is the latest result, never an input.
    """
    profile = ProfileRepository(db)
    loans = LoanApplicationRepository(db)

    assessment = calculate_affordability(
        incomes=profile.get_incomes(user_id),
        expenses=profile.get_expenses(user_id),
        existing_loan_payments=loans.active_installments_total(user_id),
        now=now or utcnow(),
        policy=policy or policy_from_settings(),
    )
    record = AssessmentRepository(db).upsert(user_id, assessment)

    logger.debug(
        "Affordability for %s: gross=%s expenses=%s status=%s",
        user_id,
        assessment.gross_monthly_income,
        assessment.total_monthly_expenses,
        assessment.affordability_status.value,
    )
    return assessment, record
