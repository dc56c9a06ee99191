"""
Ledger API Endpoints.

Read-only views over ledger entries, their audit trail and balances.
Merchants see their whole business; customers only ever see their own wallet,
with the customer id re-derived from the token.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from ledger_backend.app.db.session import get_db
from ledger_backend.app.schemas.ledger import (
    LedgerEntryResponse,
    LedgerEventResponse,
    CurrencyBalanceResponse,
    CrossBusinessSummaryResponse,
    BusinessActivityResponse,
)
from ledger_backend.app.core.dependencies import get_current_user
from ledger_backend.app.core.exceptions import ForbiddenError
from ledger_backend.app.domain.ledger.access_scope import resolve_scope
from ledger_backend.app.domain.ledger.balances import BalanceAggregator
from ledger_backend.app.domain.ledger.ledger_store import LedgerStore
from ledger_backend.app.services.audit import get_entry_history

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.get("/entries", response_model=List[LedgerEntryResponse])
async def list_ledger_entries(
    business_id: UUID = Query(..., description="Business to list entries for"),
    customer_id: Optional[UUID] = Query(None, description="Merchant-only customer filter"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List ledger entries, newest first."""
    scope = await resolve_scope(db, business_id, current_user["user_id"], customer_id)
    if not scope.has_access:
        raise ForbiddenError("No access to this business ledger")

    entries = await LedgerStore.list_entries(
        db, business_id, customer_id=scope.customer_id, limit=limit, offset=offset
    )
    return [LedgerEntryResponse.model_validate(entry) for entry in entries]


@router.get("/entries/{entry_id}/events", response_model=List[LedgerEventResponse])
async def list_entry_events(
    entry_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Audit trail of one entry, oldest first."""
    entry = await LedgerStore.get_entry(db, entry_id)

    scope = await resolve_scope(db, entry.business_id, current_user["user_id"])
    if not scope.is_merchant and scope.customer_id != entry.customer_id:
        raise ForbiddenError("No access to this ledger entry")

    events = await get_entry_history(db, entry.id)
    return [LedgerEventResponse.model_validate(item) for item in events]


@router.get("/summary", response_model=List[CurrencyBalanceResponse])
async def ledger_summary(
    business_id: UUID = Query(..., description="Business to summarize"),
    customer_id: Optional[UUID] = Query(None, description="Merchant-only customer filter"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Per-currency balances from finalized/completed entries.

    A customer without a wallet at this business gets an empty list.
    `balance` is a decimal string quantized to cents (e.g. "125.50"), not a
    JSON number, so amounts never pass through binary floating point.
    """
    scope = await resolve_scope(db, business_id, current_user["user_id"], customer_id)
    if not scope.has_access:
        return []

    balances = await BalanceAggregator.summarize(db, business_id, scope.customer_id)
    return [CurrencyBalanceResponse.model_validate(line) for line in balances]


@router.get("/summary-all", response_model=CrossBusinessSummaryResponse)
async def ledger_summary_all(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Caller's balances across every business they hold a wallet with.

    Balances and `total` are decimal strings, as in `/summary`.
    """
    summary = await BalanceAggregator.summarize_across_businesses(db, current_user["user_id"])
    return CrossBusinessSummaryResponse(
        data=[CurrencyBalanceResponse.model_validate(line) for line in summary.balances],
        total=summary.total,
    )


@router.get("/top-businesses", response_model=List[BusinessActivityResponse])
async def ledger_top_businesses(
    limit: int = Query(3, ge=1, le=20),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Caller's most used businesses.

    Ranked by settled transaction count, then most recent settled activity,
    then absolute balance. `balance` is a decimal string summed across
    currencies.
    """
    activity = await BalanceAggregator.summarize_by_business(db, current_user["user_id"], limit=limit)
    return [BusinessActivityResponse.model_validate(line) for line in activity]
