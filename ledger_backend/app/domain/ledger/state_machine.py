"""
Status transition rules for ledger entities.

Each table lists every source state explicitly; terminal states map to an
empty set. Services call `ensure_transition` before writing a new status.
"""

from ledger_backend.app.core.exceptions import InvalidStatusError
from ledger_backend.app.models.ledger_enums import (
    EntryStatus,
    PaymentIntentStatus,
    DebtRequestStatus,
)


ENTRY_TRANSITIONS = {
    EntryStatus.PENDING: frozenset({
        EntryStatus.FINALIZED,
        EntryStatus.COMPLETED,
        EntryStatus.DISPUTED,
        EntryStatus.CANCELLED,
    }),
    EntryStatus.FINALIZED: frozenset(),
    EntryStatus.COMPLETED: frozenset(),
    EntryStatus.DISPUTED: frozenset(),
    EntryStatus.CANCELLED: frozenset(),
}

PAYMENT_INTENT_TRANSITIONS = {
    PaymentIntentStatus.CREATED: frozenset({PaymentIntentStatus.USED, PaymentIntentStatus.EXPIRED}),
    PaymentIntentStatus.USED: frozenset(),
    PaymentIntentStatus.EXPIRED: frozenset(),
}

DEBT_REQUEST_TRANSITIONS = {
    DebtRequestStatus.REQUESTED: frozenset({DebtRequestStatus.APPROVED, DebtRequestStatus.REJECTED}),
    DebtRequestStatus.APPROVED: frozenset(),
    DebtRequestStatus.REJECTED: frozenset(),
}

_TABLES = {
    EntryStatus: ("Ledger entry", ENTRY_TRANSITIONS),
    PaymentIntentStatus: ("Payment intent", PAYMENT_INTENT_TRANSITIONS),
    DebtRequestStatus: ("Debt request", DEBT_REQUEST_TRANSITIONS),
}


def can_transition(current, target) -> bool:
    _, table = _TABLES[type(current)]
    return target in table[current]


def ensure_transition(current, target):
    """
    Validate a status change.

    Raises:
        InvalidStatusError: if `target` is not reachable from `current`
    """
    if type(current) is not type(target):
        raise TypeError(f"Cannot mix {type(current).__name__} and {type(target).__name__}")

    resource, table = _TABLES[type(current)]
    if target not in table[current]:
        raise InvalidStatusError(resource, current.value, target.value)
    return target


def is_terminal(status) -> bool:
    _, table = _TABLES[type(status)]
    return not table[status]
