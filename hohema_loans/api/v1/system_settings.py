"""/api/systemsettings - global lending configuration and the worker loan calculator"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from hohema_loans.api.v1.schemas import (
    InitializeSettingsResponse,
    LoanCalculationRequest,
    LoanCalculationResponse,
    SystemSettingsResponse,
    SystemSettingsUpdate,
)
from hohema_loans.api.dependencies import get_request_id, require_admin
from hohema_loans.infrastructure.database.session import get_db
from hohema_loans.infrastructure.database.repositories import SettingsRepository
from hohema_loans.domain.exceptions import InvalidLoanInputError
from hohema_loans.domain.models import LoanSettings
from hohema_loans.domain.worker_loans import calculate_worker_loan, validate_loan_settings
from hohema_loans.utils.date_utils import utcnow

router = APIRouter()


@router.get("/systemsettings", response_model=SystemSettingsResponse)
def get_settings(db: Session = Depends(get_db)):
    """Current settings; the defaults are created on first read"""
    repo = SettingsRepository(db)
    record = repo.get()
    if record is None:
        record = repo.create_default()
        db.commit()
        logging.info("Created default system settings")
    return record


@router.put("/systemsettings", response_model=SystemSettingsResponse)
def update_settings(
    body: SystemSettingsUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    request_id = get_request_id(request)
    record = SettingsRepository(db).get()
    if record is None:
        raise HTTPException(status_code=404, detail="System settings not found")

    updated = LoanSettings(
        interest_rate_percentage=body.interest_rate_percentage,
        admin_fee=body.admin_fee,
        max_loan_percentage=body.max_loan_percentage,
        min_loan_amount=body.min_loan_amount,
        max_loan_amount=body.max_loan_amount,
    )
    try:
        validate_loan_settings(updated)
    except InvalidLoanInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    record.interest_rate_percentage = updated.interest_rate_percentage
    record.admin_fee = updated.admin_fee
    record.max_loan_percentage = updated.max_loan_percentage
    record.min_loan_amount = updated.min_loan_amount
    record.max_loan_amount = updated.max_loan_amount
    record.last_modified_date = utcnow()
    record.last_modified_by = admin_id
    db.commit()

    logging.info(
        "System settings updated",
        extra={
            "request_id": request_id,
            "user_id": admin_id,
            "interest_rate_percentage": float(updated.interest_rate_percentage),
            "admin_fee": float(updated.admin_fee),
            "max_loan_percentage": float(updated.max_loan_percentage),
        },
    )
    return record


@router.post("/systemsettings/initialize", response_model=InitializeSettingsResponse)
def initialize_settings(db: Session = Depends(get_db)):
    """Idempotent setup hook: creates the defaults only when missing"""
    repo = SettingsRepository(db)
    record = repo.get()
    if record is not None:
        return InitializeSettingsResponse(
            message="Settings already initialized",
            settings=SystemSettingsResponse.model_validate(record),
        )

    record = repo.create_default(modified_by="system")
    db.commit()
    logging.info("Initialized default system settings")
    return InitializeSettingsResponse(
        message="Settings initialized successfully",
        settings=SystemSettingsResponse.model_validate(record),
    )


@router.post("/systemsettings/calculate", response_model=LoanCalculationResponse)
def calculate_loan(body: LoanCalculationRequest, db: Session = Depends(get_db)):
    """
    Size a worker loan from earnings against the current settings.

    Returns 404 until settings exist (see /systemsettings/initialize).
    """
    record = SettingsRepository(db).get()
    if record is None:
        raise HTTPException(status_code=404, detail="System settings not configured")

    try:
        result = calculate_worker_loan(
            body.hours_worked,
            body.hourly_rate,
            body.requested_amount,
            SettingsRepository.to_domain(record),
        )
    except InvalidLoanInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return LoanCalculationResponse.model_validate(result)
