"""
Ledger Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any
from uuid import UUID
from ledger_backend.app.models.ledger_enums import Currency, EntryType, EntryStatus


class LedgerEntryResponse(BaseModel):
    """Schema for displaying a ledger entry."""
    id: UUID
    business_id: UUID
    customer_id: UUID
    payment_intent_id: Optional[UUID]
    debt_request_id: Optional[UUID]
    amount: Decimal
    currency: Currency
    entry_type: EntryType
    reference: Optional[str]
    status: EntryStatus
    finalizes_at: Optional[datetime]
    finalized_at: Optional[datetime]
    merchant_confirmed_at: datetime
    customer_confirmed_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class LedgerEventResponse(BaseModel):
    """Schema for one audit trail event."""
    id: UUID
    ledger_entry_id: UUID
    actor_user_id: Optional[int]
    action: str
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="meta_data")
    created_at: datetime

    class Config:
        from_attributes = True


class CurrencyBalanceResponse(BaseModel):
    currency: Currency
    balance: Decimal
    count: int

    class Config:
        from_attributes = True


class CrossBusinessSummaryResponse(BaseModel):
    """Balances across every business the caller holds a wallet with."""
    data: List[CurrencyBalanceResponse]
    total: Decimal


class FinalizationRunResponse(BaseModel):
    finalized_count: int
    timestamp: datetime
    entry_ids: List[UUID] = []


class BusinessActivityResponse(BaseModel):
    """One of the caller's wallets, ranked by activity."""
    business_id: UUID
    business_name: str
    customer_id: UUID
    balance: Decimal
    transaction_count: int
    last_transaction_at: Optional[datetime]

    class Config:
        from_attributes = True
