"""Loan states and the calls that move a loan between them.

    PENDING --vote--> APPROVED --disburse--> DISBURSED --repay--> REPAID
       |                                        |
       +--vote--> REJECTED                      +--> DEFAULTED

Only the backend moves a loan: it counts votes, applies repayments and marks
loans repaid or defaulted. The helpers here decide which actions a page offers
and wrap each call so that a failure becomes a message instead of an
exception. Nothing is changed locally; the page reloads to show the result.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from ..errors import PortalError, ValidationError
from ..fetch import error_message
from ..models import LoanStatus, VoteDecision

log = logging.getLogger(__name__)

TRANSITIONS = {
    LoanStatus.PENDING: frozenset({LoanStatus.APPROVED, LoanStatus.REJECTED}),
    LoanStatus.APPROVED: frozenset({LoanStatus.DISBURSED}),
    LoanStatus.DISBURSED: frozenset({LoanStatus.REPAID, LoanStatus.DEFAULTED}),
    LoanStatus.REPAID: frozenset(),
    LoanStatus.REJECTED: frozenset(),
    LoanStatus.DEFAULTED: frozenset(),
}

# action -> the only status it applies to
ACTION_STATUS = {
    "vote": LoanStatus.PENDING,
    "disburse": LoanStatus.APPROVED,
    "repay": LoanStatus.DISBURSED,
}


def next_states(status):
    return TRANSITIONS[LoanStatus(status)]


def is_terminal(status):
    return not next_states(status)


def can_transition(src, dst):
    return LoanStatus(dst) in next_states(src)


def allowed_actions(status):
    status = LoanStatus(status)
    return [action for action, required in ACTION_STATUS.items() if required is status]


@dataclass
class TransitionResult:
    ok: bool
    message: str
    entity: Any = None
    status: Optional[LoanStatus] = None

    @property
    def category(self):
        return "success" if self.ok else "error"


def _positive_amount(amount):
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("Please enter a valid amount")
    if not math.isfinite(value) or value <= 0:
        raise ValidationError("Please enter a valid amount")
    return value


def _reported_status(payload):
    """Pick the loan status out of a mutation response, if it carries one."""
    if isinstance(payload, str):
        candidate = payload
    elif isinstance(payload, dict):
        candidate = payload.get("status") or payload.get("loanStatus")
        if candidate is None and isinstance(payload.get("data"), dict):
            candidate = payload["data"].get("status")
    else:
        return None
    try:
        return LoanStatus(candidate)
    except ValueError:
        return None


class LoanLifecycle:
    """Loan transitions issued against a :class:`~sacco_portal.backend.SaccoApi`."""

    def __init__(self, api):
        self.api = api

    async def _call(self, label, call, success, fallback):
        try:
            resp = await call()
        except PortalError as e:
            log.warning("%s failed: %s", label, e.message)
            return TransitionResult(False, error_message(e, fallback))
        payload = resp.data if resp is not None else None
        return TransitionResult(True, success, entity=payload, status=_reported_status(payload))

    async def request(self, member_id, amount):
        """Submit a new loan request; it starts out PENDING."""
        if not member_id:
            raise ValidationError("Please select a member")
        amount = _positive_amount(amount)
        return await self._call(
            f"loan request for member {member_id}",
            lambda: self.api.request_loan(member_id, amount),
            "Loan request submitted successfully",
            "Request failed",
        )

    async def vote(self, loan_id, member_id, decision):
        """Record one member's decision. The backend decides when it flips the loan."""
        if not member_id:
            raise ValidationError("Your session has no member id")
        decision = VoteDecision(decision)
        verb = "approved" if decision is VoteDecision.APPROVE else "rejected"
        return await self._call(
            f"vote on loan {loan_id}",
            lambda: self.api.vote(loan_id, member_id, decision),
            f"Loan {verb}!",
            "An unexpected error occurred",
        )

    async def disburse(self, loan_id):
        return await self._call(
            f"disbursement of loan {loan_id}",
            lambda: self.api.disburse(loan_id),
            "Funds disbursed successfully!",
            "Failed to disburse funds.",
        )

    async def repay(self, loan_id, amount):
        amount = _positive_amount(amount)
        return await self._call(
            f"repayment on loan {loan_id}",
            lambda: self.api.repay(loan_id, amount),
            "Repayment recorded successfully",
            "Failed to record repayment.",
        )
