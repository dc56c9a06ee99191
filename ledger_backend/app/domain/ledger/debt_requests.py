"""
Debt Request Workflow (Domain Logic).

A merchant records a claim against a customer; the customer approves it
(becoming a negative ledger entry) or rejects it (no ledger effect).
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_backend.app.core.clock import utcnow
from ledger_backend.app.core.exceptions import (
    BusinessMismatchError,
    ForbiddenError,
    InvalidStatusError,
    NotYourRequestError,
    ResourceNotFoundError,
)
from ledger_backend.app.db.session import transaction
from ledger_backend.app.domain.ledger.access_scope import (
    get_active_business,
    get_customer_for_user,
    resolve_scope,
)
from ledger_backend.app.domain.ledger.ledger_store import LedgerStore
from ledger_backend.app.domain.ledger.payment_intents import parse_currency, require_positive
from ledger_backend.app.domain.ledger.state_machine import ensure_transition
from ledger_backend.app.models.business import Customer
from ledger_backend.app.models.debt_request import DebtRequest
from ledger_backend.app.models.ledger_entry import LedgerEntry
from ledger_backend.app.models.ledger_enums import DebtRequestStatus, EntryType, LedgerAction
from ledger_backend.app.services.audit import record_ledger_event

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Rejected by customer"


@dataclass
class DebtConfirmation:
    ledger_entry: LedgerEntry
    debt_request: DebtRequest


def debt_reference(notes: Optional[str]) -> str:
    return f"Debt Request: {notes or 'No notes'}"


async def _ensure_addressed_to(db: AsyncSession, debt_request: DebtRequest, user_id: int) -> Customer:
    customer = await get_customer_for_user(db, debt_request.business_id, user_id)
    if customer is None or customer.id != debt_request.customer_id:
        logger.warning(
            "User %s attempted to act on debt request %s addressed to customer %s",
            user_id, debt_request.id, debt_request.customer_id,
        )
        raise NotYourRequestError()
    return customer


def _check_business(debt_request: DebtRequest, expected_business_id: Optional[UUID], user_id: int) -> None:
    if expected_business_id and debt_request.business_id != expected_business_id:
        logger.warning(
            "Business mismatch on debt request %s: request=%s expected=%s user=%s",
            debt_request.id, debt_request.business_id, expected_business_id, user_id,
        )
        raise BusinessMismatchError()


class DebtRequestService:

    @staticmethod
    async def create_debt_request(
        db: AsyncSession,
        *,
        business_id: UUID,
        staff_id: int,
        customer_id: UUID,
        amount: Decimal,
        currency,
        notes: Optional[str] = None,
        due_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> DebtRequest:
        """
        Record a merchant's debt claim against one of the business's customers.

        Creating the request is the merchant's consent, so merchant_confirmed_at
        is set immediately. The customer's credit limit is snapshotted for later
        comparison.

        Raises:
            ForbiddenError: caller does not own the business
            ResourceNotFoundError: business inactive/absent, or customer not in business
        """
        now = now or utcnow()
        amount = require_positive(amount)
        currency = parse_currency(currency)

        async with transaction(db):
            business = await get_active_business(db, business_id)
            if business.owner_user_id != staff_id:
                raise ForbiddenError("Only the business owner can create debt requests")

            customer = await db.get(Customer, customer_id)
            if customer is None or customer.business_id != business_id:
                raise ResourceNotFoundError("Customer", customer_id)

            debt_request = DebtRequest(
                business_id=business_id,
                customer_id=customer.id,
                created_by_staff_id=staff_id,
                amount=amount,
                currency=currency,
                credit_limit_snapshot=customer.credit_limit or Decimal("0"),
                due_date=due_date,
                notes=notes,
                status=DebtRequestStatus.REQUESTED,
                merchant_confirmed_at=now,
                created_at=now,
                updated_at=now,
            )
            db.add(debt_request)
            await db.flush()

        logger.info(
            "Debt request %s created for customer %s (%s %s)",
            debt_request.id, customer_id, amount, currency.value,
        )
        return debt_request

    @staticmethod
    async def list_debt_requests(
        db: AsyncSession,
        *,
        business_id: UUID,
        user_id: int,
        customer_id: Optional[UUID] = None,
        status: Optional[DebtRequestStatus] = None,
    ) -> list[DebtRequest]:
        """
        List debt requests visible to the caller, newest first.

        Customers only ever see their own requests; a supplied customer_id is
        ignored for them.
        """
        scope = await resolve_scope(db, business_id, user_id, customer_id)
        if not scope.has_access:
            return []

        query = select(DebtRequest).where(DebtRequest.business_id == business_id)

        if scope.customer_id:
            query = query.where(DebtRequest.customer_id == scope.customer_id)

        if status:
            query = query.where(DebtRequest.status == status)

        query = query.order_by(DebtRequest.created_at.desc(), DebtRequest.id)

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def confirm_debt_request(
        db: AsyncSession,
        *,
        debt_request_id: UUID,
        identity: dict,
        expected_business_id: Optional[UUID] = None,
        origin: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DebtConfirmation:
        """
        Approve a debt request as the addressed customer.

        Flow (one transaction, debt request row locked):
        1. Load request (NOT_FOUND)
        2. Business isolation check (BUSINESS_MISMATCH)
        3. Status must be REQUESTED (INVALID_STATUS)
        4. Caller must be the referenced customer (NOT_YOUR_REQUEST)
        5. Insert PENDING debt entry (-abs(amount))
        6. Mark request APPROVED
        7. Append customer_confirmed_debt event
        """
        now = now or utcnow()
        user_id = identity["user_id"]

        async with transaction(db):
            result = await db.execute(
                select(DebtRequest)
                .where(DebtRequest.id == debt_request_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            debt_request = result.scalar_one_or_none()

            if debt_request is None:
                raise ResourceNotFoundError("Debt request", debt_request_id)

            _check_business(debt_request, expected_business_id, user_id)

            if debt_request.status != DebtRequestStatus.REQUESTED:
                raise InvalidStatusError("Debt request", debt_request.status.value)

            await _ensure_addressed_to(db, debt_request, user_id)

            entry = await LedgerStore.create_pending_entry(
                db,
                business_id=debt_request.business_id,
                customer_id=debt_request.customer_id,
                entry_type=EntryType.DEBT,
                amount=debt_request.amount,
                currency=debt_request.currency,
                merchant_confirmed_at=debt_request.merchant_confirmed_at,
                customer_confirmed_at=now,
                reference=debt_reference(debt_request.notes),
                debt_request_id=debt_request.id,
            )

            debt_request.status = ensure_transition(debt_request.status, DebtRequestStatus.APPROVED)
            debt_request.customer_confirmed_at = now
            debt_request.updated_at = now

            await record_ledger_event(
                db,
                ledger_entry_id=entry.id,
                action=LedgerAction.CUSTOMER_CONFIRMED_DEBT,
                actor_user_id=user_id,
                metadata={
                    "debt_request_id": debt_request.id,
                    "business_id": debt_request.business_id,
                    "customer_id": debt_request.customer_id,
                    "amount": debt_request.amount,
                    "currency": debt_request.currency,
                    "ip": origin,
                },
            )

        logger.info("Debt request %s approved as ledger entry %s", debt_request.id, entry.id)
        return DebtConfirmation(ledger_entry=entry, debt_request=debt_request)

    @staticmethod
    async def reject_debt_request(
        db: AsyncSession,
        *,
        debt_request_id: UUID,
        identity: dict,
        expected_business_id: Optional[UUID] = None,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DebtRequest:
        """
        Reject a debt request as the addressed customer.

        The status change is a single UPDATE guarded by status = REQUESTED, so
        a repeated rejection (or a rejection racing an approval) matches no row
        and fails with INVALID_STATUS. No ledger entry or event is written.
        """
        now = now or utcnow()
        user_id = identity["user_id"]

        async with transaction(db):
            debt_request = await db.get(DebtRequest, debt_request_id)

            if debt_request is None:
                raise ResourceNotFoundError("Debt request", debt_request_id)

            _check_business(debt_request, expected_business_id, user_id)
            await _ensure_addressed_to(db, debt_request, user_id)

            result = await db.execute(
                update(DebtRequest)
                .where(
                    DebtRequest.id == debt_request_id,
                    DebtRequest.status == DebtRequestStatus.REQUESTED,
                )
                .values(
                    status=DebtRequestStatus.REJECTED,
                    rejection_reason=reason or DEFAULT_REJECTION_REASON,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            await db.refresh(debt_request)

            if result.rowcount == 0:
                raise InvalidStatusError(
                    "Debt request", debt_request.status.value, DebtRequestStatus.REJECTED.value
                )

        logger.info(
            "Debt request %s rejected by user %s: %s",
            debt_request.id, user_id, debt_request.rejection_reason,
        )
        return debt_request
