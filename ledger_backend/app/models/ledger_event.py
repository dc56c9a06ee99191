"""
Ledger Event database model.

Append-only audit trail keyed to ledger entries.
"""

import uuid

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Uuid, event
from sqlalchemy.sql import func
from ledger_backend.app.db.session import Base
from ledger_backend.app.models.ledger_entry import LedgerImmutabilityError


class LedgerEvent(Base):
    """
    Ledger event model.

    One row per meaningful action on a ledger entry:
    - customer_confirmed (payment intent confirmed)
    - customer_confirmed_debt (debt request approved)
    - auto_finalized (finalization engine, actor is NULL)

    Never updated or deleted.
    """
    __tablename__ = "ledger_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    ledger_entry_id = Column(Uuid, ForeignKey('ledger_entries.id'), nullable=False, index=True)

    # Who performed the action (None for automated actions)
    actor_user_id = Column(Integer, nullable=True, index=True)

    action = Column(String(100), nullable=False, index=True)

    # Amounts, currency, ids and origin for forensic replay
    meta_data = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<LedgerEvent(id={self.id}, entry={self.ledger_entry_id}, action='{self.action}')>"


@event.listens_for(LedgerEvent, "before_update")
def _reject_event_update(mapper, connection, target):
    raise LedgerImmutabilityError(f"Ledger event {target.id} is append-only")


@event.listens_for(LedgerEvent, "before_delete")
def _reject_event_delete(mapper, connection, target):
    raise LedgerImmutabilityError(f"Ledger event {target.id} is append-only")
