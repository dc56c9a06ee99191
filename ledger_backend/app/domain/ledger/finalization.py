"""
Finalization Engine (Domain Logic).

Promotes pending ledger entries whose finalization window has elapsed.
One run is one transaction: either the whole batch finalizes or none of it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_backend.app.core.clock import utcnow, as_utc
from ledger_backend.app.db.session import transaction
from ledger_backend.app.domain.ledger.state_machine import can_transition
from ledger_backend.app.models.ledger_entry import LedgerEntry
from ledger_backend.app.models.ledger_enums import EntryStatus, LedgerAction
from ledger_backend.app.services.audit import record_ledger_event

logger = logging.getLogger(__name__)

# Statuses the engine may promote, read off the entry transition table
FINALIZABLE_STATUSES = tuple(
    status for status in EntryStatus if can_transition(status, EntryStatus.FINALIZED)
)


@dataclass
class FinalizationResult:
    finalized_count: int
    timestamp: datetime
    entries: list[LedgerEntry] = field(default_factory=list)


class FinalizationEngine:

    @staticmethod
    async def run(db: AsyncSession, now: Optional[datetime] = None) -> FinalizationResult:
        """
        Finalize every pending entry with finalizes_at <= now.

        Flow:
        1. Lock due entries in a finalizable status, oldest finalizes_at first
        2. Zero rows -> zero-count result
        3. Guarded UPDATE re-asserting status and finalizes_at
        4. One auto_finalized event per entry (actor = system)

        Safe to run concurrently with itself: a second run waits on the row
        locks and then sees nothing due.
        """
        now = now or utcnow()
        try:
            async with transaction(db):
                # 1. Lock due entries
                result = await db.execute(
                    select(LedgerEntry)
                    .where(
                        LedgerEntry.status.in_(FINALIZABLE_STATUSES),
                        LedgerEntry.finalizes_at <= now,
                    )
                    .order_by(LedgerEntry.finalizes_at, LedgerEntry.id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                due = list(result.scalars().all())

                # 2. Nothing to do
                if not due:
                    logger.info("Finalization run at %s: no entries due", now.isoformat())
                    return FinalizationResult(finalized_count=0, timestamp=now)

                original_finalizes_at = {entry.id: entry.finalizes_at for entry in due}
                ids = list(original_finalizes_at)

                # 3. Guarded bulk update
                await db.execute(
                    update(LedgerEntry)
                    .where(
                        LedgerEntry.id.in_(ids),
                        LedgerEntry.status.in_(FINALIZABLE_STATUSES),
                        LedgerEntry.finalizes_at <= now,
                    )
                    .values(status=EntryStatus.FINALIZED, finalized_at=now)
                    .execution_options(synchronize_session=False)
                )

                result = await db.execute(
                    select(LedgerEntry)
                    .where(
                        LedgerEntry.id.in_(ids),
                        LedgerEntry.status == EntryStatus.FINALIZED,
                    )
                    .order_by(LedgerEntry.finalizes_at, LedgerEntry.id)
                    .execution_options(populate_existing=True)
                )
                finalized = list(result.scalars().all())

                # 4. Audit
                for entry in finalized:
                    await record_ledger_event(
                        db,
                        ledger_entry_id=entry.id,
                        action=LedgerAction.AUTO_FINALIZED,
                        actor_user_id=None,
                        metadata={
                            "finalized_at": now,
                            "original_finalizes_at": as_utc(original_finalizes_at[entry.id]),
                            "amount": entry.amount,
                            "currency": entry.currency,
                            "entry_type": entry.entry_type,
                            "cron_timestamp": utcnow(),
                        },
                    )
        except Exception:
            logger.exception("Finalization run at %s failed; batch rolled back", now.isoformat())
            raise

        logger.info("Finalization run at %s: finalized %d entries", now.isoformat(), len(finalized))
        return FinalizationResult(finalized_count=len(finalized), timestamp=now, entries=finalized)
