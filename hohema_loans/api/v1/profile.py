"""GET /api/profile/affordability - affordability assessment for the caller"""

import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from hohema_loans.api.v1.schemas import AffordabilityResponse, MaxLoanResponse
from hohema_loans.api.dependencies import get_current_user_id, get_request_id
from hohema_loans.config import settings
from hohema_loans.infrastructure.database.session import get_db
from hohema_loans.domain.affordability import max_affordable_loan
from hohema_loans.domain.exceptions import InvalidLoanInputError
from hohema_loans.domain.models import AffordabilityAssessment
from hohema_loans.services.affordability import assess_user, policy_from_settings
from hohema_loans.infrastructure.observability.metrics import record_affordability
from hohema_loans.infrastructure.observability.logging import log_affordability

router = APIRouter()


def _to_response(assessment: AffordabilityAssessment) -> AffordabilityResponse:
    return AffordabilityResponse(
        gross_monthly_income=assessment.gross_monthly_income,
        net_monthly_income=assessment.net_monthly_income,
        total_monthly_expenses=assessment.total_monthly_expenses,
        essential_expenses=assessment.essential_expenses,
        non_essential_expenses=assessment.non_essential_expenses,
        existing_debt_payments=assessment.existing_debt_payments,
        debt_to_income_ratio=assessment.debt_to_income_ratio,
        available_funds=assessment.available_funds,
        expense_to_income_ratio=assessment.expense_to_income_ratio,
        affordability_status=assessment.affordability_status.value,
        assessment_notes=assessment.assessment_notes,
        max_recommended_loan_amount=assessment.max_recommended_loan_amount,
        assessment_date=assessment.assessment_date,
        expiry_date=assessment.expiry_date,
    )


@router.get("/profile/affordability", response_model=AffordabilityResponse)
def get_affordability(
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """
    Assess the caller from their declared incomes, expenses and active loans.

    The assessment is recomputed on every call and replaces the stored snapshot.
    """
    request_id = get_request_id(request)

    try:
        assessment, _ = assess_user(db, user_id)
        db.commit()
    except Exception as e:
        db.rollback()
        logging.exception(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Error calculating affordability assessment")

    record_affordability(assessment.affordability_status.value)
    log_affordability(
        request_id,
        user_id,
        assessment.affordability_status.value,
        float(assessment.debt_to_income_ratio),
        float(assessment.max_recommended_loan_amount),
    )
    return _to_response(assessment)


@router.get("/profile/affordability/max-loan", response_model=MaxLoanResponse)
def get_max_loan(
    request: Request,
    interest_rate: Optional[Decimal] = Query(None, alias="interestRate", ge=0, description="Annual rate as a fraction"),
    term_months: Optional[int] = Query(None, alias="termMonths"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """
    Largest loan the caller can afford.

    Defaults to the reference rate and term used by the assessment itself.
    """
    request_id = get_request_id(request)
    rate = settings.reference_annual_rate if interest_rate is None else interest_rate
    term = settings.reference_term_months if term_months is None else term_months

    try:
        assessment, _ = assess_user(db, user_id)
        max_amount = max_affordable_loan(assessment, rate, term, policy_from_settings())
        db.commit()
    except InvalidLoanInputError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        db.rollback()
        logging.exception(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Error calculating maximum loan amount")

    return MaxLoanResponse(
        max_recommended_loan_amount=assessment.max_recommended_loan_amount,
        max_affordable_loan_amount=max_amount,
        interest_rate=rate,
        term_months=term,
        affordability_status=assessment.affordability_status.value,
    )
