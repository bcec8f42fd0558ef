"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from hohema_loans.config import settings
from hohema_loans.infrastructure.cache.pin_store import DatabasePinStore, InMemoryPinStore, PinStore
from hohema_loans.infrastructure.clients.whatsapp import WhatsAppClient
from hohema_loans.infrastructure.database.session import get_db

ADMIN_ROLE = "Admin"


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, set by the authenticating proxy in front of the service"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user identity")
    return x_user_id


def require_admin(
    user_id: str = Depends(get_current_user_id),
    x_user_role: str | None = Header(default=None),
) -> str:
    if x_user_role != ADMIN_ROLE:
        raise HTTPException(status_code=403, detail="Admin role required")
    return user_id


def get_pin_store(request: Request, db: Session = Depends(get_db)) -> PinStore:
    """Signing PIN store selected by settings.pin_store_backend"""
    if settings.pin_store_backend == "database":
        return DatabasePinStore(db)

    store = getattr(request.app.state, "pin_store", None)
    if store is None:
        store = InMemoryPinStore()
        request.app.state.pin_store = store
    return store


def get_whatsapp_client() -> WhatsAppClient:
    """Provide WhatsApp Cloud API client instance"""
    return WhatsAppClient()
