"""
Balance Aggregator (Domain Logic).

Balances are never stored; they are computed from settled ledger entries on
every read. Callers are responsible for resolving the access scope first.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_backend.app.core.clock import as_utc
from ledger_backend.app.domain.ledger.access_scope import list_customer_ids_for_user
from ledger_backend.app.models.business import Business, Customer
from ledger_backend.app.models.ledger_entry import LedgerEntry
from ledger_backend.app.models.ledger_enums import Currency, SETTLED_STATUSES

CENT = Decimal("0.01")


@dataclass
class CurrencyBalance:
    currency: Currency
    balance: Decimal
    count: int


@dataclass
class CrossBusinessBalance:
    balances: list[CurrencyBalance]
    total: Decimal


@dataclass
class BusinessActivity:
    business_id: UUID
    business_name: str
    customer_id: UUID
    balance: Decimal
    transaction_count: int
    last_transaction_at: Optional[datetime]


def _to_money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT)


def _activity_rank(activity: BusinessActivity):
    # Most used, then most recent, then largest absolute balance
    last = activity.last_transaction_at
    return (
        -activity.transaction_count,
        last is None,
        -last.timestamp() if last else 0,
        -abs(activity.balance),
    )


class BalanceAggregator:

    @staticmethod
    async def _grouped(db: AsyncSession, *criteria) -> list[CurrencyBalance]:
        query = (
            select(
                LedgerEntry.currency,
                func.sum(LedgerEntry.amount),
                func.count(LedgerEntry.id),
            )
            .where(LedgerEntry.status.in_(SETTLED_STATUSES), *criteria)
            .group_by(LedgerEntry.currency)
            .order_by(LedgerEntry.currency)
        )
        result = await db.execute(query)
        return [
            CurrencyBalance(currency=currency, balance=_to_money(balance), count=int(count))
            for currency, balance, count in result.all()
        ]

    @staticmethod
    async def summarize(
        db: AsyncSession,
        business_id: UUID,
        customer_id: Optional[UUID] = None,
    ) -> list[CurrencyBalance]:
        """Per-currency balance of a business, or of one customer within it."""
        criteria = [LedgerEntry.business_id == business_id]
        if customer_id:
            criteria.append(LedgerEntry.customer_id == customer_id)
        return await BalanceAggregator._grouped(db, *criteria)

    @staticmethod
    async def summarize_for_customers(
        db: AsyncSession,
        customer_ids: Sequence[UUID],
    ) -> list[CurrencyBalance]:
        if not customer_ids:
            return []
        return await BalanceAggregator._grouped(db, LedgerEntry.customer_id.in_(list(customer_ids)))

    @staticmethod
    async def summarize_across_businesses(db: AsyncSession, user_id: int) -> CrossBusinessBalance:
        """
        Union of the user's wallets across every business they are a customer of.

        `total` adds balances regardless of currency; multi-currency display is
        left to the client.
        """
        customer_ids = await list_customer_ids_for_user(db, user_id)
        balances = await BalanceAggregator.summarize_for_customers(db, customer_ids)
        total = sum((line.balance for line in balances), Decimal("0")).quantize(CENT)
        return CrossBusinessBalance(balances=balances, total=total)

    @staticmethod
    async def summarize_by_business(db: AsyncSession, user_id: int, limit: int = 3) -> list[BusinessActivity]:
        """
        The user's most active wallets, one line per business.

        Wallets without settled entries are included with a zero balance so a
        newly joined business can still appear when the user has few others.
        `balance` adds settled amounts regardless of currency.
        """
        settled = (LedgerEntry.customer_id == Customer.id) & LedgerEntry.status.in_(SETTLED_STATUSES)
        query = (
            select(
                Customer.business_id,
                Business.name,
                Customer.id,
                func.sum(LedgerEntry.amount),
                func.count(LedgerEntry.id),
                func.max(LedgerEntry.created_at),
            )
            .join(Business, Business.id == Customer.business_id)
            .outerjoin(LedgerEntry, settled)
            .where(Customer.user_id == user_id)
            .group_by(Customer.business_id, Business.name, Customer.id)
        )
        result = await db.execute(query)
        activity = [
            BusinessActivity(
                business_id=business_id,
                business_name=name,
                customer_id=customer_id,
                balance=_to_money(balance),
                transaction_count=int(count),
                last_transaction_at=as_utc(last_at),
            )
            for business_id, name, customer_id, balance, count, last_at in result.all()
        ]
        activity.sort(key=_activity_rank)
        return activity[:limit]
