"""Loan application status machine.

Draft applications are submitted into Pending; Pending (or UnderReview)
applications are decided, and only Approved loans can be disbursed.
"""

from typing import Dict, Set

from hohema_loans.domain.exceptions import InvalidStateTransitionError
from hohema_loans.domain.models import LoanStatus

TRANSITIONS: Dict[LoanStatus, Set[LoanStatus]] = {
    LoanStatus.DRAFT: {LoanStatus.PENDING},
    LoanStatus.PENDING: {LoanStatus.UNDER_REVIEW, LoanStatus.APPROVED, LoanStatus.REJECTED},
    LoanStatus.UNDER_REVIEW: {LoanStatus.APPROVED, LoanStatus.REJECTED},
    LoanStatus.APPROVED: {LoanStatus.DISBURSED},
    LoanStatus.DISBURSED: {LoanStatus.CLOSED},
    LoanStatus.REJECTED: set(),
    LoanStatus.CLOSED: set(),
}


def can_transition(from_status: LoanStatus, to_status: LoanStatus) -> bool:
    return to_status in TRANSITIONS.get(from_status, set())


def ensure_transition(from_status: LoanStatus, to_status: LoanStatus) -> None:
    if not can_transition(from_status, to_status):
        raise InvalidStateTransitionError(
            f"Cannot move a {from_status.value} application to {to_status.value}"
        )
