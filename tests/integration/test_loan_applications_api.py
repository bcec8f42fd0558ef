"""Integration tests for /api/loanapplications"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from hohema_loans.infrastructure.database.models import WhatsAppSession

BANK_DETAILS = {"bankName": "Capitec", "accountNumber": "1234567890", "accountHolderName": "T Mokoena"}


def _create_draft(client: TestClient, headers: dict, **body) -> dict:
    response = client.post("/api/loanapplications/draft", json=body, headers=headers)
    assert response.status_code == 201
    return response.json()


def _step(client: TestClient, headers: dict, app_id: str, step: int, body: dict | None = None):
    return client.put(f"/api/loanapplications/{app_id}/step/{step}", json=body or {}, headers=headers)


def _complete_wizard(client: TestClient, headers: dict, app_id: str) -> dict:
    steps = [
        {"amount": 50000},
        {"termMonths": 12},
        {"purpose": "Home improvement"},
        {},
        {},
        BANK_DETAILS,
        {},
    ]
    response = None
    for number, body in enumerate(steps):
        response = _step(client, headers, app_id, number, body)
        assert response.status_code == 200, response.json()
    return response.json()


@pytest.fixture
def draft(client: TestClient, user_headers: dict) -> dict:
    return _create_draft(client, user_headers)


@pytest.fixture
def pending_application(client: TestClient, user_headers: dict) -> dict:
    response = client.post(
        "/api/loanapplications/legacy",
        json={"amount": 50000, "termMonths": 12, "purpose": "Vehicle repairs"},
        headers=user_headers,
    )
    assert response.status_code == 201
    return response.json()


def test_create_draft(draft: dict):
    assert draft["status"] == "Draft"
    assert draft["currentStep"] == 0
    assert draft["channelOrigin"] == "Web"
    assert draft["webInitiatedDate"] is not None
    assert draft["stepData"] == {}


def test_requires_identity(client: TestClient):
    assert client.post("/api/loanapplications/draft", json={}).status_code == 401


def test_step_updates_typed_fields_and_terms(client: TestClient, user_headers: dict, draft: dict):
    _step(client, user_headers, draft["id"], 0, {"amount": 50000})
    response = _step(client, user_headers, draft["id"], 1, {"termMonths": 12})

    assert response.status_code == 200
    data = response.json()
    assert data["currentStep"] == 1
    assert data["amount"] == 50000.0
    assert data["termMonths"] == 12
    assert data["interestRate"] == 0.12
    assert data["monthlyPayment"] == 4442.44
    assert data["totalAmount"] == 53309.28
    assert data["stepData"]["0"] == {"amount": 50000.0}
    assert data["stepData"]["1"] == {"termMonths": 12}


def test_step_cannot_skip_ahead(client: TestClient, user_headers: dict, draft: dict):
    response = _step(client, user_headers, draft["id"], 2, {"purpose": "Education"})
    assert response.status_code == 400


def test_step_can_go_back(client: TestClient, user_headers: dict, draft: dict):
    _step(client, user_headers, draft["id"], 0, {"amount": 1000})
    _step(client, user_headers, draft["id"], 1, {"termMonths": 6})

    response = _step(client, user_headers, draft["id"], 0, {"amount": 2000})

    assert response.status_code == 200
    assert response.json()["currentStep"] == 0
    assert response.json()["amount"] == 2000.0
    assert response.json()["stepData"]["1"] == {"termMonths": 6}


def test_step_validates_required_fields(client: TestClient, user_headers: dict, draft: dict):
    assert _step(client, user_headers, draft["id"], 0, {}).status_code == 400
    assert _step(client, user_headers, draft["id"], 0, {"amount": -5}).status_code == 400


def test_step_rejects_term_beyond_maximum(client: TestClient, user_headers: dict, draft: dict):
    _step(client, user_headers, draft["id"], 0, {"amount": 50000})

    response = _step(client, user_headers, draft["id"], 1, {"termMonths": 1_000_000_000})
    assert response.status_code == 400
    assert "360" in response.json()["detail"]

    # term carried on another step is checked too
    assert _step(client, user_headers, draft["id"], 0, {"amount": 50000, "termMonths": 361}).status_code == 400
    assert _step(client, user_headers, draft["id"], 1, {"termMonths": 360}).status_code == 200


def test_unknown_step_rejected(client: TestClient, user_headers: dict, draft: dict):
    assert _step(client, user_headers, draft["id"], 9).status_code == 400


def test_affordability_review_step_assesses_user(
    client: TestClient, user_headers: dict, draft: dict, affordable_profile: str
):
    _step(client, user_headers, draft["id"], 0, {"amount": 5000})
    _step(client, user_headers, draft["id"], 1, {"termMonths": 12})
    _step(client, user_headers, draft["id"], 2, {"purpose": "Education"})

    response = _step(client, user_headers, draft["id"], 3)

    assert response.status_code == 200
    assert response.json()["affordabilityStatus"] == "Affordable"
    assert response.json()["stepData"]["3"] == {"reviewed": True}


def test_other_users_cannot_see_application(client: TestClient, draft: dict):
    response = client.get(f"/api/loanapplications/{draft['id']}", headers={"X-User-Id": "someone-else"})
    assert response.status_code == 404


def test_list_applications(client: TestClient, user_headers: dict, draft: dict, pending_application: dict):
    response = client.get("/api/loanapplications", headers=user_headers)

    assert response.status_code == 200
    ids = {app["id"] for app in response.json()}
    assert ids == {draft["id"], pending_application["id"]}


def test_full_wizard_and_signed_submission(client: TestClient, user_headers: dict, draft: dict):
    _complete_wizard(client, user_headers, draft["id"])

    otp = client.post(f"/api/loanapplications/{draft['id']}/otp", headers=user_headers)
    assert otp.status_code == 200
    pin = otp.json()["pin"]
    assert otp.json()["expiresInMinutes"] == 10

    response = client.post(f"/api/loanapplications/{draft['id']}/submit", json={"otp": pin}, headers=user_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Pending"
    assert data["currentStep"] == 7
    assert data["bankName"] == "Capitec"
    assert data["monthlyPayment"] == 4442.44

    # Submitted applications are frozen
    assert _step(client, user_headers, draft["id"], 0, {"amount": 10}).status_code == 400
    again = client.post(f"/api/loanapplications/{draft['id']}/submit", json={"otp": pin}, headers=user_headers)
    assert again.status_code == 400


def test_submit_requires_pin(client: TestClient, user_headers: dict, draft: dict):
    _complete_wizard(client, user_headers, draft["id"])

    missing = client.post(f"/api/loanapplications/{draft['id']}/submit", json={}, headers=user_headers)
    assert missing.status_code == 400

    client.post(f"/api/loanapplications/{draft['id']}/otp", headers=user_headers)
    wrong = client.post(f"/api/loanapplications/{draft['id']}/submit", json={"otp": "abcdef"}, headers=user_headers)
    assert wrong.status_code == 400
    assert "attempt" in wrong.json()["detail"]

    status = client.get(f"/api/loanapplications/{draft['id']}", headers=user_headers).json()["status"]
    assert status == "Draft"


def test_submit_requires_bank_details(client: TestClient, user_headers: dict, draft: dict):
    _step(client, user_headers, draft["id"], 0, {"amount": 1000})
    _step(client, user_headers, draft["id"], 1, {"termMonths": 6})
    _step(client, user_headers, draft["id"], 2, {"purpose": "Groceries"})
    pin = client.post(f"/api/loanapplications/{draft['id']}/otp", headers=user_headers).json()["pin"]

    response = client.post(f"/api/loanapplications/{draft['id']}/submit", json={"otp": pin}, headers=user_headers)

    assert response.status_code == 400
    assert "Bank details" in response.json()["detail"]


def test_whatsapp_draft_opens_session_and_receives_pin(
    client: TestClient, db: Session, whatsapp, user_headers: dict
):
    draft = _create_draft(client, user_headers, channelOrigin="WhatsApp", phoneNumber="+27821234567")
    assert draft["channelOrigin"] == "WhatsApp"
    assert draft["whatsappSessionId"] is not None

    _complete_wizard(client, user_headers, draft["id"])
    pin = client.post(f"/api/loanapplications/{draft['id']}/otp", headers=user_headers).json()["pin"]
    assert whatsapp.sent == [("+27821234567", pin)]

    client.post(f"/api/loanapplications/{draft['id']}/submit", json={"otp": pin}, headers=user_headers)
    session = db.query(WhatsAppSession).one()
    assert session.session_status == "Completed"
    assert session.completed_at is not None


def test_resume_web_draft_on_whatsapp(client: TestClient, db: Session, user_headers: dict, draft: dict):
    response = client.post(
        "/api/loanapplications/resume",
        json={"channel": "WhatsApp", "phoneNumber": "+27821234567"},
        headers=user_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == draft["id"]
    assert data["channelOrigin"] == "Web"
    assert data["whatsappInitiatedDate"] is not None
    assert data["whatsappSessionId"] is not None
    assert db.query(WhatsAppSession).one().notes == "Resumed from Web"


def test_resume_without_draft(client: TestClient, user_headers: dict):
    response = client.post("/api/loanapplications/resume", json={"channel": "Web"}, headers=user_headers)
    assert response.status_code == 404


def test_quoted_loan_is_pending(pending_application: dict):
    assert pending_application["status"] == "Pending"
    assert pending_application["currentStep"] == 7
    assert pending_application["interestRate"] == 0.12
    assert pending_application["monthlyPayment"] == 4442.44


def test_worker_loan_requires_settings(client: TestClient, user_headers: dict):
    response = client.post(
        "/api/loanapplications",
        json={"hoursWorked": 160, "hourlyRate": 100, "amount": 2000, "repaymentDay": 25, "purpose": "Rent"},
        headers=user_headers,
    )
    assert response.status_code == 404


def test_worker_loan(client: TestClient, user_headers: dict, affordable_profile: str):
    client.post("/api/systemsettings/initialize")

    response = client.post(
        "/api/loanapplications",
        json={"hoursWorked": 160, "hourlyRate": 100, "amount": 2000, "repaymentDay": 31, "purpose": "Rent"},
        headers=user_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "Pending"
    assert data["termMonths"] == 1
    assert data["amount"] == 2000.0
    assert data["monthlyEarnings"] == 16000.0
    assert data["maxLoanAmount"] == 3200.0
    assert data["totalAmount"] == 2150.0
    assert data["appliedInterestRate"] == 5.0
    assert data["appliedAdminFee"] == 50.0
    assert data["repaymentDay"] == 31
    assert data["expectedRepaymentDate"] is not None
    assert data["affordabilityStatus"] == "Affordable"
    assert data["passedAffordabilityCheck"] is True


def test_worker_loan_failing_affordability_is_still_created(client: TestClient, user_headers: dict):
    client.post("/api/systemsettings/initialize")

    response = client.post(
        "/api/loanapplications",
        json={"hoursWorked": 160, "hourlyRate": 100, "amount": 2000, "repaymentDay": 25, "purpose": "Rent"},
        headers=user_headers,
    )

    assert response.status_code == 201
    assert response.json()["passedAffordabilityCheck"] is False


def test_worker_loan_repayment_day_range(client: TestClient, user_headers: dict):
    client.post("/api/systemsettings/initialize")

    response = client.post(
        "/api/loanapplications",
        json={"hoursWorked": 160, "hourlyRate": 100, "amount": 2000, "repaymentDay": 10, "purpose": "Rent"},
        headers=user_headers,
    )
    assert response.status_code == 422


def test_admin_approve_and_disburse(client: TestClient, admin_headers: dict, pending_application: dict):
    app_id = pending_application["id"]

    response = client.post(
        f"/api/loanapplications/{app_id}/approve",
        json={"interestRate": 12, "repaymentMonths": 12, "notes": "Verified payslips"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Approved"
    assert data["interestRate"] == 0.12
    assert data["monthlyPayment"] == 4442.44
    assert data["totalAmount"] == 53309.28
    assert data["approvalDate"] is not None
    assert data["notes"] == "Verified payslips"

    disbursed = client.post(f"/api/loanapplications/{app_id}/disburse", json={"notes": "EFT"}, headers=admin_headers)
    assert disbursed.status_code == 200
    assert disbursed.json()["status"] == "Disbursed"
    assert disbursed.json()["notes"].endswith("Disbursement: EFT")


def test_approve_at_zero_rate(client: TestClient, admin_headers: dict, pending_application: dict):
    response = client.post(
        f"/api/loanapplications/{pending_application['id']}/approve",
        json={"interestRate": 0, "repaymentMonths": 10},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["monthlyPayment"] == 5000.0
    assert response.json()["totalAmount"] == 50000.0


def test_quoted_loan_rejects_term_beyond_maximum(client: TestClient, user_headers: dict):
    response = client.post(
        "/api/loanapplications/legacy",
        json={"amount": 50000, "termMonths": 1_000_000_000, "purpose": "Vehicle repairs"},
        headers=user_headers,
    )
    assert response.status_code == 400


def test_approve_rejects_term_beyond_maximum(client: TestClient, admin_headers: dict, pending_application: dict):
    response = client.post(
        f"/api/loanapplications/{pending_application['id']}/approve",
        json={"interestRate": 12, "repaymentMonths": 1_000_000_000},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_decisions_require_admin(client: TestClient, user_headers: dict, pending_application: dict):
    response = client.post(
        f"/api/loanapplications/{pending_application['id']}/approve",
        json={"interestRate": 12, "repaymentMonths": 12},
        headers=user_headers,
    )
    assert response.status_code == 403


def test_reject_then_approve_fails(client: TestClient, admin_headers: dict, pending_application: dict):
    app_id = pending_application["id"]

    rejected = client.post(f"/api/loanapplications/{app_id}/reject", json={"reason": "Incomplete"}, headers=admin_headers)
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "Rejected"
    assert rejected.json()["notes"] == "Incomplete"

    approve = client.post(
        f"/api/loanapplications/{app_id}/approve",
        json={"interestRate": 12, "repaymentMonths": 12},
        headers=admin_headers,
    )
    assert approve.status_code == 400


def test_draft_cannot_be_approved_or_disbursed(client: TestClient, admin_headers: dict, draft: dict):
    approve = client.post(
        f"/api/loanapplications/{draft['id']}/approve",
        json={"interestRate": 12, "repaymentMonths": 12},
        headers=admin_headers,
    )
    assert approve.status_code == 400
    assert client.post(f"/api/loanapplications/{draft['id']}/disburse", json={}, headers=admin_headers).status_code == 400


def test_approve_unknown_application(client: TestClient, admin_headers: dict):
    response = client.post(
        "/api/loanapplications/00000000-0000-0000-0000-000000000000/approve",
        json={"interestRate": 12, "repaymentMonths": 12},
        headers=admin_headers,
    )
    assert response.status_code == 404
