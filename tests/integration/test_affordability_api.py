"""Integration tests for /api/profile/affordability"""

import uuid
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from hohema_loans.infrastructure.database.models import AffordabilityAssessmentRecord, Expense, Income, LoanApplication
from hohema_loans.domain.models import LoanStatus


def test_affordability_requires_identity(client: TestClient):
    assert client.get("/api/profile/affordability").status_code == 401


def test_affordable_profile(client: TestClient, user_headers: dict, affordable_profile: str):
    response = client.get("/api/profile/affordability", headers=user_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["grossMonthlyIncome"] == 8500.0
    assert data["essentialExpenses"] == 4300.0
    assert data["nonEssentialExpenses"] == 0.0
    assert data["debtToIncomeRatio"] == 0.0
    assert round(data["expenseToIncomeRatio"], 3) == 0.506
    assert data["availableFunds"] == 4200.0
    assert data["affordabilityStatus"] == "Affordable"
    assert data["maxRecommendedLoanAmount"] > 0
    assert "Expense analysis" in data["assessmentNotes"]


def test_assessment_is_upserted(client: TestClient, db: Session, user_headers: dict, affordable_profile: str):
    client.get("/api/profile/affordability", headers=user_headers)
    client.get("/api/profile/affordability", headers=user_headers)

    records = db.query(AffordabilityAssessmentRecord).filter_by(user_id=affordable_profile).all()
    assert len(records) == 1
    assert records[0].affordability_status == "Affordable"


def test_empty_profile_not_affordable(client: TestClient, user_headers: dict):
    response = client.get("/api/profile/affordability", headers=user_headers)

    assert response.status_code == 200
    assert response.json()["affordabilityStatus"] == "NotAffordable"
    assert response.json()["maxRecommendedLoanAmount"] == 0.0


def test_active_loans_count_as_debt(client: TestClient, db: Session, user_headers: dict, affordable_profile: str):
    db.add(
        LoanApplication(
            id=uuid.uuid4(),
            user_id=affordable_profile,
            amount=Decimal("20000"),
            term_months=24,
            purpose="Vehicle",
            status=LoanStatus.DISBURSED.value,
            monthly_payment=Decimal("850.00"),
            current_step=7,
            step_data={},
        )
    )
    # Drafts and rejected loans are ignored
    db.add(
        LoanApplication(
            id=uuid.uuid4(),
            user_id=affordable_profile,
            status=LoanStatus.REJECTED.value,
            monthly_payment=Decimal("999.00"),
            step_data={},
        )
    )
    db.commit()

    data = client.get("/api/profile/affordability", headers=user_headers).json()
    assert data["existingDebtPayments"] == 850.0
    assert round(data["debtToIncomeRatio"], 2) == 0.1


def test_max_loan_for_rate_and_term(client: TestClient, user_headers: dict, affordable_profile: str):
    """Capacity is min(80% of 4 200, 35% of 8 500) = 2 975 a month"""
    response = client.get(
        "/api/profile/affordability/max-loan",
        params={"interestRate": 0, "termMonths": 10},
        headers=user_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["maxAffordableLoanAmount"] == 29750.0
    assert data["termMonths"] == 10
    assert data["maxRecommendedLoanAmount"] > 0


def test_max_loan_defaults_to_reference_terms(client: TestClient, user_headers: dict, affordable_profile: str):
    data = client.get("/api/profile/affordability/max-loan", headers=user_headers).json()

    assert data["interestRate"] == 0.11
    assert data["termMonths"] == 36


def test_max_loan_rejects_bad_term(client: TestClient, user_headers: dict, affordable_profile: str):
    response = client.get(
        "/api/profile/affordability/max-loan",
        params={"termMonths": 0},
        headers=user_headers,
    )
    assert response.status_code == 400


def test_max_loan_rejects_term_beyond_maximum(client: TestClient, user_headers: dict, affordable_profile: str):
    response = client.get(
        "/api/profile/affordability/max-loan",
        params={"termMonths": 1_000_000_000, "interestRate": 0.11},
        headers=user_headers,
    )
    assert response.status_code == 400


def test_extreme_ratios_are_stored(client: TestClient, db: Session, user_headers: dict):
    """R12 a year against R1000 of monthly debt gives ratios of 1000"""
    db.add_all(
        [
            Income(user_id="user-thandi", source_type="Gift", monthly_amount=Decimal("12.00"), frequency="Annual"),
            Expense(user_id="user-thandi", category="Debt", monthly_amount=Decimal("1000.00")),
        ]
    )
    db.commit()

    response = client.get("/api/profile/affordability", headers=user_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["debtToIncomeRatio"] == 1000.0
    assert data["expenseToIncomeRatio"] == 1000.0
    assert data["affordabilityStatus"] == "NotAffordable"

    record = db.query(AffordabilityAssessmentRecord).filter_by(user_id="user-thandi").one()
    assert record.debt_to_income_ratio == Decimal("1000")


def test_ratio_columns_hold_large_ratios():
    for column in ("debt_to_income_ratio", "expense_to_income_ratio"):
        ratio_type = AffordabilityAssessmentRecord.__table__.c[column].type
        assert ratio_type.precision - ratio_type.scale >= 10
