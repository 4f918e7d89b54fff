"""Payout request validation and the review state machine.

    pending  -> approved | completed | rejected
    approved -> completed | rejected

completed and rejected are terminal, so a rejection refund can only ever be
applied once.
"""

from src.tm_common.enums import PayoutMethod, PayoutStatus
from src.tm_common.errors import (
    InvalidAmountError,
    InvalidPayoutDecisionError,
    InvalidPayoutDestinationError,
    InvalidPayoutMethodError,
    PayoutBelowMinimumError,
)

ALLOWED_TRANSITIONS: dict[PayoutStatus, frozenset[PayoutStatus]] = {
    PayoutStatus.PENDING: frozenset(
        {PayoutStatus.APPROVED, PayoutStatus.COMPLETED, PayoutStatus.REJECTED}
    ),
    PayoutStatus.APPROVED: frozenset({PayoutStatus.COMPLETED, PayoutStatus.REJECTED}),
    PayoutStatus.COMPLETED: frozenset(),
    PayoutStatus.REJECTED: frozenset(),
}

# Statuses an admin still has to act on: everything that is not terminal
AWAITING_ACTION: tuple[PayoutStatus, ...] = tuple(
    status for status, targets in ALLOWED_TRANSITIONS.items() if targets
)


def parse_method(value: object) -> PayoutMethod:
    if isinstance(value, PayoutMethod):
        return value
    if isinstance(value, str):
        try:
            return PayoutMethod(value.strip().lower())
        except ValueError:
            pass
    raise InvalidPayoutMethodError(value)


def parse_decision(value: object) -> PayoutStatus:
    if isinstance(value, str):
        try:
            decision = PayoutStatus(value.strip().lower())
        except ValueError:
            raise InvalidPayoutDecisionError(value) from None
        if decision is not PayoutStatus.PENDING:
            return decision
    raise InvalidPayoutDecisionError(value)


def check_request(tokens: object, destination: str, minimum: int) -> None:
    if isinstance(tokens, bool) or not isinstance(tokens, int):
        raise InvalidAmountError(f"payout amount must be an integer, got {tokens!r}")
    if tokens < minimum:
        raise PayoutBelowMinimumError(tokens, minimum)
    if not destination.strip():
        raise InvalidPayoutDestinationError()


def can_transition(current: PayoutStatus | str, decision: PayoutStatus) -> bool:
    return decision in ALLOWED_TRANSITIONS[PayoutStatus(current)]
