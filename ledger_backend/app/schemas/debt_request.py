"""
Debt Request Schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from ledger_backend.app.models.ledger_enums import Currency, DebtRequestStatus
from ledger_backend.app.schemas.ledger import LedgerEntryResponse


class DebtRequestCreate(BaseModel):
    """Schema for a merchant recording a debt against a customer."""
    business_id: UUID
    customer_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    currency: Currency
    notes: Optional[str] = Field(None, max_length=1000)
    due_date: Optional[date] = None


class DebtRequestConfirm(BaseModel):
    business_id: Optional[UUID] = None


class DebtRequestReject(BaseModel):
    business_id: Optional[UUID] = None
    rejection_reason: Optional[str] = Field(None, max_length=500)


class DebtRequestResponse(BaseModel):
    """Schema for displaying a debt request."""
    id: UUID
    business_id: UUID
    customer_id: UUID
    created_by_staff_id: int
    amount: Decimal
    currency: Currency
    credit_limit_snapshot: Decimal
    due_date: Optional[date]
    notes: Optional[str]
    status: DebtRequestStatus
    merchant_confirmed_at: datetime
    customer_confirmed_at: Optional[datetime]
    rejection_reason: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class DebtConfirmationResponse(BaseModel):
    """Result of approving a debt request."""
    ledger_entry: LedgerEntryResponse
    debt_request: DebtRequestResponse

    class Config:
        from_attributes = True
