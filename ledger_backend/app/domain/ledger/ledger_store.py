"""
Ledger Store (Domain Logic).

The only place LedgerEntry rows are created or read. Sign, consent and
idempotency rules are enforced here so the workflows above cannot bypass them.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_backend.app.core.config import settings
from ledger_backend.app.core.exceptions import AlreadyProcessedError, ResourceNotFoundError
from ledger_backend.app.models.ledger_entry import LedgerEntry
from ledger_backend.app.models.ledger_enums import Currency, EntryType, EntryStatus

logger = logging.getLogger(__name__)

# Unique indexes that make a repeated settlement detectable
IDEMPOTENCY_CONSTRAINTS = {
    "uq_ledger_payment_intent": "Payment intent",
    "ledger_entries.payment_intent_id": "Payment intent",
    "uq_ledger_debt_request": "Debt request",
    "ledger_entries.debt_request_id": "Debt request",
}


def signed_amount(entry_type: EntryType, amount: Decimal) -> Decimal:
    """
    Apply the ledger sign convention.

    Payments are credits and must already be positive. Debts always debit the
    customer, whatever sign the source amount was stored with.
    """
    amount = Decimal(amount)
    if amount == 0:
        raise ValueError("Ledger amounts cannot be zero")
    if entry_type == EntryType.DEBT:
        return -abs(amount)
    if amount < 0:
        raise ValueError("Payment amounts must be positive")
    return amount


def _idempotency_resource(exc: IntegrityError) -> Optional[str]:
    message = str(exc.orig)
    for marker, resource in IDEMPOTENCY_CONSTRAINTS.items():
        if marker in message:
            return resource
    return None


class LedgerStore:

    @staticmethod
    async def create_pending_entry(
        db: AsyncSession,
        *,
        business_id: UUID,
        customer_id: UUID,
        entry_type: EntryType,
        amount: Decimal,
        currency: Currency,
        merchant_confirmed_at: datetime,
        customer_confirmed_at: datetime,
        reference: Optional[str] = None,
        payment_intent_id: Optional[UUID] = None,
        debt_request_id: Optional[UUID] = None,
    ) -> LedgerEntry:
        """
        Insert a PENDING entry that finalizes after the finalization window.

        Flow:
        1. Check consent (both confirmation timestamps present)
        2. Apply the sign convention
        3. Insert and flush (unique origin indexes fire here)

        Raises:
            AlreadyProcessedError: the origin intent/debt request already has an entry
        """
        if merchant_confirmed_at is None or customer_confirmed_at is None:
            raise ValueError("Ledger entries require both merchant and customer consent")

        entry = LedgerEntry(
            business_id=business_id,
            customer_id=customer_id,
            payment_intent_id=payment_intent_id,
            debt_request_id=debt_request_id,
            amount=signed_amount(entry_type, amount),
            currency=currency,
            entry_type=entry_type,
            reference=reference,
            status=EntryStatus.PENDING,
            finalizes_at=customer_confirmed_at + timedelta(hours=settings.finalization_window_hours),
            merchant_confirmed_at=merchant_confirmed_at,
            customer_confirmed_at=customer_confirmed_at,
            created_at=customer_confirmed_at,
        )
        db.add(entry)

        try:
            await db.flush()
        except IntegrityError as exc:
            resource = _idempotency_resource(exc)
            if resource is None:
                raise
            logger.info(
                "Duplicate settlement rejected (payment_intent=%s, debt_request=%s)",
                payment_intent_id, debt_request_id,
            )
            raise AlreadyProcessedError(resource) from exc

        return entry

    @staticmethod
    async def get_entry(db: AsyncSession, entry_id: UUID) -> LedgerEntry:
        entry = await db.get(LedgerEntry, entry_id)
        if entry is None:
            raise ResourceNotFoundError("Ledger entry", entry_id)
        return entry

    @staticmethod
    async def list_entries(
        db: AsyncSession,
        business_id: UUID,
        customer_id: Optional[UUID] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[LedgerEntry]:
        """List entries for a business (optionally one customer), newest first."""
        query = select(LedgerEntry).where(LedgerEntry.business_id == business_id)

        if customer_id:
            query = query.where(LedgerEntry.customer_id == customer_id)

        query = query.order_by(LedgerEntry.created_at.desc(), LedgerEntry.id).limit(limit).offset(offset)

        result = await db.execute(query)
        return list(result.scalars().all())
