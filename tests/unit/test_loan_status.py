"""Unit tests for the loan status machine"""

import pytest
from hohema_loans.domain.loan_status import can_transition, ensure_transition
from hohema_loans.domain.models import LoanStatus
from hohema_loans.domain.exceptions import InvalidStateTransitionError


@pytest.mark.parametrize(
    "from_status,to_status",
    [
        (LoanStatus.DRAFT, LoanStatus.PENDING),
        (LoanStatus.PENDING, LoanStatus.UNDER_REVIEW),
        (LoanStatus.PENDING, LoanStatus.APPROVED),
        (LoanStatus.PENDING, LoanStatus.REJECTED),
        (LoanStatus.UNDER_REVIEW, LoanStatus.APPROVED),
        (LoanStatus.APPROVED, LoanStatus.DISBURSED),
        (LoanStatus.DISBURSED, LoanStatus.CLOSED),
    ],
)
def test_allowed_transitions(from_status: LoanStatus, to_status: LoanStatus):
    assert can_transition(from_status, to_status)
    ensure_transition(from_status, to_status)


@pytest.mark.parametrize(
    "from_status,to_status",
    [
        (LoanStatus.DRAFT, LoanStatus.APPROVED),
        (LoanStatus.PENDING, LoanStatus.DISBURSED),
        (LoanStatus.APPROVED, LoanStatus.REJECTED),
        (LoanStatus.REJECTED, LoanStatus.PENDING),
        (LoanStatus.CLOSED, LoanStatus.DISBURSED),
    ],
)
def test_forbidden_transitions(from_status: LoanStatus, to_status: LoanStatus):
    assert not can_transition(from_status, to_status)
    with pytest.raises(InvalidStateTransitionError):
        ensure_transition(from_status, to_status)
