"""/api/loanapplications - drafts, the application wizard, signing and admin decisions"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from hohema_loans.api.v1.schemas import (
    ApproveRequest,
    CreateDraftRequest,
    CreateQuotedLoanRequest,
    CreateWorkerLoanRequest,
    DisburseRequest,
    LoanApplicationResponse,
    RejectRequest,
    ResumeDraftRequest,
    SigningPinRequest,
    SigningPinResponse,
    SubmitApplicationRequest,
    UpdateStepRequest,
)
from hohema_loans.api.dependencies import (
    get_current_user_id,
    get_pin_store,
    get_request_id,
    get_whatsapp_client,
    require_admin,
)
from hohema_loans.config import settings
from hohema_loans.infrastructure.database.session import get_db
from hohema_loans.infrastructure.database.repositories import WhatsAppSessionRepository
from hohema_loans.infrastructure.cache.pin_store import PinStore
from hohema_loans.infrastructure.clients.whatsapp import WhatsAppClient
from hohema_loans.domain.exceptions import (
    ApplicationNotFoundError,
    InvalidLoanInputError,
    InvalidStateTransitionError,
    InvalidStepDataError,
    InvalidStepTransitionError,
    PinVerificationError,
    SettingsNotConfiguredError,
)
from hohema_loans.domain.wizard import WizardStep
from hohema_loans.services.loan_applications import LoanApplicationService
from hohema_loans.infrastructure.observability.metrics import (
    record_application_created,
    record_status_change,
    record_wizard_step,
)
from hohema_loans.infrastructure.observability.logging import log_application_event, log_step_update

router = APIRouter()

# Domain errors a client can fix by changing the request
_CLIENT_ERRORS = (
    InvalidLoanInputError,
    InvalidStepDataError,
    InvalidStepTransitionError,
    InvalidStateTransitionError,
)


def _unexpected(db: Session, request_id: str, e: Exception) -> HTTPException:
    db.rollback()
    logging.exception(f"Unexpected error: {e}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")


@router.get("/loanapplications", response_model=List[LoanApplicationResponse])
def list_applications(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return LoanApplicationService(db).list_for_user(user_id)


@router.get("/loanapplications/{application_id}", response_model=LoanApplicationResponse)
def get_application(
    application_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return LoanApplicationService(db).get(application_id, user_id)
    except ApplicationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/loanapplications", response_model=LoanApplicationResponse, status_code=201)
def create_worker_loan(
    body: CreateWorkerLoanRequest,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """
    Apply for a single-payment loan sized from hours worked.

    Flow:
    1. Size the loan from current settings (cap, floor, ceiling)
    2. Refresh the affordability assessment and check the repayment against it
    3. Persist a Pending application with the expected repayment date
    """
    request_id = get_request_id(request)

    try:
        application = LoanApplicationService(db).create_worker_loan(
            user_id,
            body.hours_worked,
            body.hourly_rate,
            body.amount,
            body.repayment_day,
            body.purpose,
        )
        db.commit()

    except SettingsNotConfiguredError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except _CLIENT_ERRORS as e:
        db.rollback()
        logging.warning(f"Invalid worker loan: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        raise _unexpected(db, request_id, e)

    record_application_created(application.channel_origin)
    record_status_change(application.status)
    log_application_event(request_id, user_id, str(application.id), "created", application.status)
    return application


@router.post("/loanapplications/legacy", response_model=LoanApplicationResponse, status_code=201)
def create_quoted_loan(
    body: CreateQuotedLoanRequest,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Apply in one shot with a quoted rate, skipping the wizard"""
    request_id = get_request_id(request)

    try:
        application = LoanApplicationService(db).create_quoted_loan(
            user_id, body.amount, body.term_months, body.purpose, body.channel_origin
        )
        db.commit()

    except _CLIENT_ERRORS as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        raise _unexpected(db, request_id, e)

    record_application_created(application.channel_origin)
    record_status_change(application.status)
    log_application_event(request_id, user_id, str(application.id), "created", application.status)
    return application


@router.post("/loanapplications/draft", response_model=LoanApplicationResponse, status_code=201)
def create_draft(
    body: CreateDraftRequest,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    request_id = get_request_id(request)

    try:
        application = LoanApplicationService(db).create_draft(user_id, body.channel_origin, body.phone_number)
        db.commit()
    except Exception as e:
        raise _unexpected(db, request_id, e)

    record_application_created(application.channel_origin)
    log_application_event(request_id, user_id, str(application.id), "draft_created", application.status)
    return application


@router.post("/loanapplications/resume", response_model=LoanApplicationResponse)
def resume_draft(
    body: ResumeDraftRequest,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Pick up the caller's latest draft on another channel"""
    request_id = get_request_id(request)

    try:
        application = LoanApplicationService(db).resume(user_id, body.channel, body.phone_number)
        db.commit()
    except Exception as e:
        raise _unexpected(db, request_id, e)

    if application is None:
        raise HTTPException(status_code=404, detail="No draft application to resume")

    log_application_event(request_id, user_id, str(application.id), f"resumed_on_{body.channel.value}", application.status)
    return application


@router.put("/loanapplications/{application_id}/step/{step}", response_model=LoanApplicationResponse)
def update_step(
    application_id: uuid.UUID,
    step: int,
    body: UpdateStepRequest,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """
    Save one wizard step.

    A client may revisit any earlier step or advance by exactly one; terms are
    re-quoted whenever amount and term are both known.
    """
    request_id = get_request_id(request)

    try:
        application = LoanApplicationService(db).update_step(
            application_id, user_id, step, body.model_dump(exclude_none=True)
        )
        db.commit()

    except ApplicationNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except _CLIENT_ERRORS as e:
        db.rollback()
        logging.warning(f"Rejected step update: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        raise _unexpected(db, request_id, e)

    record_wizard_step(WizardStep(step).name)
    log_step_update(request_id, user_id, str(application.id), step, application.current_step)
    return application


@router.post("/loanapplications/{application_id}/otp", response_model=SigningPinResponse)
def request_signing_pin(
    application_id: uuid.UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    body: Optional[SigningPinRequest] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    pin_store: PinStore = Depends(get_pin_store),
    whatsapp_client: WhatsAppClient = Depends(get_whatsapp_client),
):
    """
    Issue the one-time PIN that signs the application.

    The PIN goes out over WhatsApp to the draft's session number (or the number
    in the body); it is only echoed back in development.
    """
    request_id = get_request_id(request)
    service = LoanApplicationService(db, pin_store=pin_store)

    try:
        pin = service.request_signature_pin(application_id, user_id)
        application = service.get(application_id, user_id)
        db.commit()

    except ApplicationNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except _CLIENT_ERRORS as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        raise _unexpected(db, request_id, e)

    phone_number = body.phone_number if body else None
    if phone_number is None and application.whatsapp_session_id:
        session = WhatsAppSessionRepository(db).get_by_id(application.whatsapp_session_id)
        phone_number = session.phone_number if session else None

    if phone_number:
        background_tasks.add_task(whatsapp_client.send_signing_pin, phone_number, pin)
    else:
        logging.warning("No phone number for signing PIN delivery", extra={"request_id": request_id})

    return SigningPinResponse(
        message="Signing PIN issued",
        expires_in_minutes=settings.pin_ttl_minutes,
        pin=pin if settings.environment == "development" else None,
    )


@router.post("/loanapplications/{application_id}/submit", response_model=LoanApplicationResponse)
def submit_application(
    application_id: uuid.UUID,
    body: SubmitApplicationRequest,
    request: Request,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    pin_store: PinStore = Depends(get_pin_store),
):
    """Sign with the PIN and move the draft to Pending"""
    request_id = get_request_id(request)

    try:
        application = LoanApplicationService(db, pin_store=pin_store).submit(application_id, user_id, body.otp)
        db.commit()

    except ApplicationNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except PinVerificationError as e:
        # Keep the attempt count (nothing else has changed yet)
        db.commit()
        logging.warning(f"Signing PIN rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except _CLIENT_ERRORS as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        raise _unexpected(db, request_id, e)

    record_status_change(application.status)
    log_application_event(request_id, user_id, str(application.id), "submitted", application.status)
    return application


@router.post("/loanapplications/{application_id}/approve", response_model=LoanApplicationResponse)
def approve_application(
    application_id: uuid.UUID,
    body: ApproveRequest,
    request: Request,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    """Approve at the admin's rate (percent) and term, re-amortizing the loan"""
    request_id = get_request_id(request)

    try:
        application = LoanApplicationService(db).approve(
            application_id, body.interest_rate, body.repayment_months, body.notes
        )
        db.commit()

    except ApplicationNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except _CLIENT_ERRORS as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        raise _unexpected(db, request_id, e)

    record_status_change(application.status)
    log_application_event(request_id, admin_id, str(application.id), "approved", application.status)
    return application


@router.post("/loanapplications/{application_id}/reject", response_model=LoanApplicationResponse)
def reject_application(
    application_id: uuid.UUID,
    body: RejectRequest,
    request: Request,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    request_id = get_request_id(request)

    try:
        application = LoanApplicationService(db).reject(application_id, body.reason)
        db.commit()

    except ApplicationNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except _CLIENT_ERRORS as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        raise _unexpected(db, request_id, e)

    record_status_change(application.status)
    log_application_event(request_id, admin_id, str(application.id), "rejected", application.status)
    return application


@router.post("/loanapplications/{application_id}/disburse", response_model=LoanApplicationResponse)
def disburse_application(
    application_id: uuid.UUID,
    body: DisburseRequest,
    request: Request,
    db: Session = Depends(get_db),
    admin_id: str = Depends(require_admin),
):
    request_id = get_request_id(request)

    try:
        application = LoanApplicationService(db).disburse(application_id, body.notes)
        db.commit()

    except ApplicationNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except _CLIENT_ERRORS as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        raise _unexpected(db, request_id, e)

    record_status_change(application.status)
    log_application_event(request_id, admin_id, str(application.id), "disbursed", application.status)
    return application
