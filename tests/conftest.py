"""Pytest fixtures for testing"""

import pytest
from decimal import Decimal
from typing import Generator, List, Tuple
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from hohema_loans.api.main import create_app
from hohema_loans.api.dependencies import get_whatsapp_client
from hohema_loans.infrastructure.database.models import Base, Expense, Income
from hohema_loans.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

USER_ID = "user-thandi"
ADMIN_HEADERS = {"X-User-Id": "admin-1", "X-User-Role": "Admin"}


class FakeWhatsAppClient:
    """Records outbound PINs instead of calling the Cloud API"""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []

    async def send_signing_pin(self, phone_number: str, pin: str) -> None:
        self.sent.append((phone_number, pin))


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def whatsapp() -> FakeWhatsAppClient:
    return FakeWhatsAppClient()


@pytest.fixture
def client(db: Session, whatsapp: FakeWhatsAppClient) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_whatsapp_client] = lambda: whatsapp
    return TestClient(app)


@pytest.fixture
def user_headers() -> dict:
    return {"X-User-Id": USER_ID}


@pytest.fixture
def admin_headers() -> dict:
    return dict(ADMIN_HEADERS)


@pytest.fixture
def affordable_profile(db: Session) -> str:
    """Income 8500, essential expenses 4300, no debt"""
    db.add_all(
        [
            Income(user_id=USER_ID, source_type="Salary", monthly_amount=Decimal("8000.00")),
            Income(user_id=USER_ID, source_type="Side business", monthly_amount=Decimal("500.00")),
            Expense(user_id=USER_ID, category="Housing", monthly_amount=Decimal("3000.00"), is_essential=True),
            Expense(user_id=USER_ID, category="Groceries", monthly_amount=Decimal("1300.00"), is_essential=True),
        ]
    )
    db.commit()
    return USER_ID
