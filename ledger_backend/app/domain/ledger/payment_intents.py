"""
Payment Intent Manager (Domain Logic).

Issues short-lived, QR-backed payment requests and converts a customer's
confirmation into exactly one pending ledger entry.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_backend.app.core.clock import utcnow, as_utc
from ledger_backend.app.core.config import settings
from ledger_backend.app.core.exceptions import (
    BusinessMismatchError,
    ExpiredError,
    InvalidStatusError,
    ResourceNotFoundError,
    ValidationFailedError,
)
from ledger_backend.app.db.session import transaction
from ledger_backend.app.domain.ledger.access_scope import get_active_business, get_or_create_customer
from ledger_backend.app.domain.ledger.ledger_store import LedgerStore
from ledger_backend.app.domain.ledger.state_machine import ensure_transition
from ledger_backend.app.models.ledger_entry import LedgerEntry
from ledger_backend.app.models.ledger_enums import Currency, EntryType, LedgerAction, PaymentIntentStatus
from ledger_backend.app.models.payment_intent import PaymentIntent
from ledger_backend.app.services.audit import record_ledger_event

logger = logging.getLogger(__name__)


def parse_currency(value) -> Currency:
    try:
        return Currency(value)
    except ValueError:
        raise ValidationFailedError(
            f"Invalid currency: {value}",
            details={"supported": [c.value for c in Currency]},
        )


def require_positive(amount) -> Decimal:
    amount = Decimal(amount)
    if amount <= 0:
        raise ValidationFailedError("Amount must be positive")
    return amount


class PaymentIntentService:

    @staticmethod
    def qr_url(intent: PaymentIntent) -> str:
        """Deep link encoded in the QR code shown at the point of sale."""
        return f"{settings.app_url.rstrip('/')}/pay/intent/{intent.id}"

    @staticmethod
    async def create_intent(
        db: AsyncSession,
        *,
        business_id: UUID,
        staff_id: int,
        amount: Decimal,
        currency,
        invoice_reference: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PaymentIntent:
        """
        Create a payment intent valid for PAYMENT_INTENT_TTL_MINUTES.

        No ledger side effect.
        """
        now = now or utcnow()
        amount = require_positive(amount)
        currency = parse_currency(currency)

        async with transaction(db):
            await get_active_business(db, business_id)

            intent = PaymentIntent(
                business_id=business_id,
                created_by_staff_id=staff_id,
                amount=amount,
                currency=currency,
                invoice_reference=invoice_reference,
                status=PaymentIntentStatus.CREATED,
                expires_at=now + timedelta(minutes=settings.payment_intent_ttl_minutes),
                created_at=now,
                updated_at=now,
            )
            db.add(intent)
            await db.flush()

        logger.info("Payment intent %s created for business %s (%s %s)", intent.id, business_id, amount, currency.value)
        return intent

    @staticmethod
    async def get_intent(db: AsyncSession, intent_id: UUID, now: Optional[datetime] = None) -> PaymentIntent:
        """
        Read an intent for the confirmation screen.

        Read-only: an expired intent is reported as such but not transitioned.
        """
        now = now or utcnow()
        intent = await db.get(PaymentIntent, intent_id)

        if intent is None:
            raise ResourceNotFoundError("Payment intent", intent_id)

        if intent.status != PaymentIntentStatus.CREATED:
            raise InvalidStatusError("Payment intent", intent.status.value)

        if now > as_utc(intent.expires_at):
            raise ExpiredError("Payment intent")

        return intent

    @staticmethod
    async def confirm_intent(
        db: AsyncSession,
        *,
        intent_id: UUID,
        identity: dict,
        expected_business_id: Optional[UUID] = None,
        origin: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LedgerEntry:
        """
        Confirm a payment intent on behalf of the authenticated customer.

        Flow (one transaction, intent row locked):
        1. Load intent (NOT_FOUND)
        2. Business isolation check (BUSINESS_MISMATCH)
        3. Status must be CREATED (INVALID_STATUS)
        4. Expiry check, lazily marking the intent EXPIRED (EXPIRED)
        5. Resolve or create the customer record
        6. Insert PENDING payment entry (+amount)
        7. Mark intent USED
        8. Append customer_confirmed event

        Raises:
            AlreadyProcessedError: a retried confirmation hit the unique intent index
        """
        now = now or utcnow()
        user_id = identity["user_id"]

        async with transaction(db):
            # 1. Lock and load
            result = await db.execute(
                select(PaymentIntent)
                .where(PaymentIntent.id == intent_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            intent = result.scalar_one_or_none()

            if intent is None:
                raise ResourceNotFoundError("Payment intent", intent_id)

            # 2. Business isolation
            if expected_business_id and intent.business_id != expected_business_id:
                logger.warning(
                    "Business mismatch on intent %s: intent=%s expected=%s user=%s",
                    intent.id, intent.business_id, expected_business_id, user_id,
                )
                raise BusinessMismatchError()

            # 3. Status
            if intent.status != PaymentIntentStatus.CREATED:
                raise InvalidStatusError("Payment intent", intent.status.value)

            # 4. Expiry; the EXPIRED transition is kept even though the call fails
            if now > as_utc(intent.expires_at):
                intent.status = ensure_transition(intent.status, PaymentIntentStatus.EXPIRED)
                intent.updated_at = now
                await db.commit()
                logger.info("Payment intent %s expired on confirmation attempt", intent.id)
                raise ExpiredError("Payment intent")

            # 5. Customer wallet
            customer = await get_or_create_customer(db, intent.business_id, identity)

            # 6. Ledger entry; merchant consent is the act of creating the intent
            entry = await LedgerStore.create_pending_entry(
                db,
                business_id=intent.business_id,
                customer_id=customer.id,
                entry_type=EntryType.PAYMENT,
                amount=intent.amount,
                currency=intent.currency,
                merchant_confirmed_at=intent.created_at,
                customer_confirmed_at=now,
                reference=intent.invoice_reference,
                payment_intent_id=intent.id,
            )

            # 7. Consume intent
            intent.status = ensure_transition(intent.status, PaymentIntentStatus.USED)
            intent.updated_at = now

            # 8. Audit
            await record_ledger_event(
                db,
                ledger_entry_id=entry.id,
                action=LedgerAction.CUSTOMER_CONFIRMED,
                actor_user_id=user_id,
                metadata={
                    "intent_id": intent.id,
                    "business_id": intent.business_id,
                    "customer_id": customer.id,
                    "amount": intent.amount,
                    "currency": intent.currency,
                    "ip": origin,
                },
            )

        logger.info("Payment intent %s confirmed as ledger entry %s", intent.id, entry.id)
        return entry
