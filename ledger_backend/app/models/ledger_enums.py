"""
Ledger enumerations.
"""

import enum


class Currency(str, enum.Enum):
    """Supported settlement currencies."""
    YER = "YER"
    SAR = "SAR"
    USD = "USD"


class EntryType(str, enum.Enum):
    """Ledger entry type enumeration."""
    PAYMENT = "payment"  # Positive amount, customer credit with the business
    DEBT = "debt"  # Negative amount, money owed by the customer


class EntryStatus(str, enum.Enum):
    """Ledger entry status enumeration."""
    PENDING = "pending"  # Inside the finalization window
    FINALIZED = "finalized"  # Promoted by the finalization engine
    COMPLETED = "completed"
    DISPUTED = "disputed"  # Reserved, no writer yet
    CANCELLED = "cancelled"  # Reserved, no writer yet


class PaymentIntentStatus(str, enum.Enum):
    """Payment intent status enumeration."""
    CREATED = "created"
    USED = "used"
    EXPIRED = "expired"


class DebtRequestStatus(str, enum.Enum):
    """Debt request status enumeration."""
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"


class LedgerAction:
    """Standardized ledger event actions."""
    CUSTOMER_CONFIRMED = "customer_confirmed"
    CUSTOMER_CONFIRMED_DEBT = "customer_confirmed_debt"
    AUTO_FINALIZED = "auto_finalized"


# Balances only count money that can no longer be disputed
SETTLED_STATUSES = (EntryStatus.FINALIZED, EntryStatus.COMPLETED)


def enum_values(enum_cls):
    """Persist enum values (e.g. 'pending') rather than member names."""
    return [member.value for member in enum_cls]
