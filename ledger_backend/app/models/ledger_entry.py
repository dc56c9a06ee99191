"""
Ledger Entry database model.

Immutable, signed monetary records scoped to one business/customer pair.
"""

import uuid

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Numeric, Enum, Uuid,
    CheckConstraint, Index, event, inspect,
)
from sqlalchemy.sql import func
from ledger_backend.app.db.session import Base
from ledger_backend.app.models.ledger_enums import Currency, EntryType, EntryStatus, enum_values


# Columns that no UPDATE may touch once the row exists
IMMUTABLE_COLUMNS = (
    "amount",
    "currency",
    "business_id",
    "customer_id",
    "entry_type",
    "payment_intent_id",
    "debt_request_id",
)


class LedgerImmutabilityError(Exception):
    """Raised when code attempts to rewrite the monetary facts of an entry."""


class LedgerEntry(Base):
    """
    Ledger Entry model.

    Sign carries meaning: positive = payment received (customer credit),
    negative = debt owed. Entries are written PENDING and only the
    finalization engine promotes them. NO updates of monetary columns and NO
    deletions.
    """
    __tablename__ = "ledger_entries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Scope
    business_id = Column(Uuid, ForeignKey('businesses.id'), nullable=False, index=True)
    customer_id = Column(Uuid, ForeignKey('customers.id'), nullable=False, index=True)

    # Origin (unique when present: one entry per intent / debt request)
    payment_intent_id = Column(Uuid, ForeignKey('payment_intents.id'), nullable=True)
    debt_request_id = Column(Uuid, ForeignKey('debt_requests.id'), nullable=True)

    # Financials
    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(Enum(Currency, name="currency", values_callable=enum_values), nullable=False)
    entry_type = Column(Enum(EntryType, name="ledger_entry_type", values_callable=enum_values), nullable=False)
    reference = Column(String(255), nullable=True)

    # Lifecycle
    status = Column(
        Enum(EntryStatus, name="ledger_entry_status", values_callable=enum_values),
        default=EntryStatus.PENDING,
        nullable=False,
        index=True,
    )
    finalizes_at = Column(DateTime(timezone=True), nullable=True, index=True)
    finalized_at = Column(DateTime(timezone=True), nullable=True)

    # Consent
    merchant_confirmed_at = Column(DateTime(timezone=True), nullable=False)
    customer_confirmed_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index('uq_ledger_payment_intent', 'payment_intent_id', unique=True),
        Index('uq_ledger_debt_request', 'debt_request_id', unique=True),
        Index('ix_ledger_business_customer_status', 'business_id', 'customer_id', 'status'),
        CheckConstraint(
            "(entry_type = 'payment' AND amount > 0) OR (entry_type = 'debt' AND amount < 0)",
            name="ck_ledger_amount_sign",
        ),
        CheckConstraint(
            "merchant_confirmed_at IS NOT NULL AND customer_confirmed_at IS NOT NULL",
            name="ck_ledger_consent",
        ),
    )

    def __repr__(self):
        return f"<LedgerEntry(id={self.id}, type='{self.entry_type.value}', amount={self.amount}, status='{self.status.value}')>"


@event.listens_for(LedgerEntry, "before_update")
def _reject_monetary_rewrite(mapper, connection, target):
    state = inspect(target)
    changed = [name for name in IMMUTABLE_COLUMNS if state.attrs[name].history.has_changes()]
    if changed:
        raise LedgerImmutabilityError(
            f"Ledger entry {target.id} is immutable; attempted to change {', '.join(changed)}"
        )


@event.listens_for(LedgerEntry, "before_delete")
def _reject_entry_delete(mapper, connection, target):
    raise LedgerImmutabilityError(f"Ledger entry {target.id} cannot be deleted")
