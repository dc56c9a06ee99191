"""
Payment Intent Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from ledger_backend.app.models.ledger_enums import Currency, PaymentIntentStatus


class PaymentIntentCreate(BaseModel):
    """Schema for issuing a payment intent at the point of sale."""
    business_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    currency: Currency
    invoice_reference: Optional[str] = Field(None, max_length=255)


class PaymentIntentCreated(BaseModel):
    """Returned to the POS so it can render the QR code."""
    intent_id: UUID
    qr_url: str
    expires_at: datetime


class PaymentIntentConfirm(BaseModel):
    """Customer confirmation; business_id is the business the customer believes they are paying."""
    intent_id: UUID
    business_id: Optional[UUID] = None


class PaymentIntentResponse(BaseModel):
    """Schema for displaying a payment intent on the confirmation screen."""
    id: UUID
    business_id: UUID
    amount: Decimal
    currency: Currency
    invoice_reference: Optional[str]
    status: PaymentIntentStatus
    expires_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True
