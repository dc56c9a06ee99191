"""
Ledger audit trail service.

Appends LedgerEvent rows inside the caller's transaction and reads them back
for entry history.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ledger_backend.app.core.clock import utcnow
from ledger_backend.app.models.ledger_event import LedgerEvent


def _jsonable(value: Any) -> Any:
    """Convert ledger values into JSON-safe primitives for event metadata."""
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


async def record_ledger_event(
    db: AsyncSession,
    ledger_entry_id: UUID,
    action: str,
    actor_user_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> LedgerEvent:
    """
    Append an event to the ledger audit trail.

    Does not commit: the event belongs to the same transaction as the state
    change it describes.

    Args:
        db: Database session
        ledger_entry_id: Entry the event refers to
        action: Action performed (use LedgerAction constants)
        actor_user_id: User performing the action, None for automated runs
        metadata: Amounts, currency, ids and origin for forensic replay

    Returns:
        Created LedgerEvent instance
    """
    ledger_event = LedgerEvent(
        ledger_entry_id=ledger_entry_id,
        actor_user_id=actor_user_id,
        action=action,
        meta_data=_jsonable(metadata or {}),
        created_at=utcnow(),
    )

    db.add(ledger_event)
    await db.flush()

    return ledger_event


async def get_entry_history(
    db: AsyncSession,
    ledger_entry_id: UUID,
    action: Optional[str] = None,
) -> list[LedgerEvent]:
    """
    Retrieve the audit trail of one ledger entry, oldest first.

    Args:
        db: Database session
        ledger_entry_id: Entry to get history for
        action: Filter by action type

    Returns:
        List of LedgerEvent instances
    """
    query = select(LedgerEvent).where(LedgerEvent.ledger_entry_id == ledger_entry_id)

    if action:
        query = query.where(LedgerEvent.action == action)

    query = query.order_by(LedgerEvent.created_at, LedgerEvent.id)

    result = await db.execute(query)
    return list(result.scalars().all())
