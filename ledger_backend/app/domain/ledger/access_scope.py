"""
Access scope resolution for ledger reads and customer actions.

A merchant (business owner) may see any customer of the business; a customer
may only ever see their own wallet, and their customer id is always derived
from the authenticated identity, never taken from the request.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_backend.app.core.exceptions import ResourceNotFoundError
from ledger_backend.app.models.business import Business, Customer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerScope:
    """What the caller may see inside one business."""
    is_merchant: bool
    customer_id: Optional[UUID]

    @property
    def has_access(self) -> bool:
        return self.is_merchant or self.customer_id is not None


async def get_active_business(db: AsyncSession, business_id: UUID) -> Business:
    business = await db.get(Business, business_id)
    if business is None or not business.is_active:
        raise ResourceNotFoundError("Business", business_id)
    return business


async def is_business_owner(db: AsyncSession, business_id: UUID, user_id: int) -> bool:
    result = await db.execute(
        select(Business.id).where(
            Business.id == business_id,
            Business.owner_user_id == user_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def get_customer_for_user(db: AsyncSession, business_id: UUID, user_id: int) -> Optional[Customer]:
    result = await db.execute(
        select(Customer).where(
            Customer.business_id == business_id,
            Customer.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def list_customer_ids_for_user(db: AsyncSession, user_id: int) -> list[UUID]:
    result = await db.execute(select(Customer.id).where(Customer.user_id == user_id))
    return list(result.scalars().all())


async def resolve_scope(
    db: AsyncSession,
    business_id: UUID,
    user_id: int,
    requested_customer_id: Optional[UUID] = None,
) -> CallerScope:
    """
    Work out the caller's view of a business.

    Merchants keep the requested customer filter (or none, for the whole
    business). Everyone else is pinned to their own customer record and the
    requested id is ignored.
    """
    if await is_business_owner(db, business_id, user_id):
        return CallerScope(is_merchant=True, customer_id=requested_customer_id)

    customer = await get_customer_for_user(db, business_id, user_id)
    return CallerScope(is_merchant=False, customer_id=customer.id if customer else None)


async def get_or_create_customer(db: AsyncSession, business_id: UUID, identity: dict) -> Customer:
    """
    Resolve the caller's customer record for a business, creating it on first use.

    Runs inside the caller's transaction. The insert gets its own savepoint: if
    a concurrent confirmation created the record first, the (business_id,
    user_id) unique constraint fires, the savepoint is rolled back and the
    winner's record is returned.
    """
    user_id = identity["user_id"]
    customer = await get_customer_for_user(db, business_id, user_id)
    if customer is not None:
        return customer

    customer = Customer(
        business_id=business_id,
        user_id=user_id,
        name=identity.get("name") or "Customer",
        phone=identity.get("phone") or "Unknown",
        email=identity.get("email"),
    )
    try:
        async with db.begin_nested():
            db.add(customer)
            await db.flush()
    except IntegrityError:
        customer = await get_customer_for_user(db, business_id, user_id)
        if customer is None:
            raise
        logger.info("Customer record for user %s at business %s created concurrently; reusing it",
                    user_id, business_id)
    return customer
