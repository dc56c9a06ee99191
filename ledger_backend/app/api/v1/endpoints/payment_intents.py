"""
Payment Intent API Endpoints.

POS staff issue intents; customers open them from the QR code and confirm.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from ledger_backend.app.db.session import get_db
from ledger_backend.app.schemas.payment_intent import (
    PaymentIntentCreate,
    PaymentIntentCreated,
    PaymentIntentConfirm,
    PaymentIntentResponse,
)
from ledger_backend.app.schemas.ledger import LedgerEntryResponse
from ledger_backend.app.core.guards import require_permission
from ledger_backend.app.core.dependencies import get_current_user, get_client_ip
from ledger_backend.app.models.enums import Permission
from ledger_backend.app.domain.ledger.payment_intents import PaymentIntentService

router = APIRouter(prefix="/payment-intents", tags=["Payment Intents"])


@router.post("", response_model=PaymentIntentCreated, status_code=status.HTTP_201_CREATED)
async def create_payment_intent(
    intent_data: PaymentIntentCreate,
    current_user: dict = Depends(require_permission(Permission.ACCESS_POS)),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a payment intent (POS staff).

    The intent expires after PAYMENT_INTENT_TTL_MINUTES; the QR code encodes `qr_url`.
    """
    intent = await PaymentIntentService.create_intent(
        db,
        business_id=intent_data.business_id,
        staff_id=current_user["user_id"],
        amount=intent_data.amount,
        currency=intent_data.currency,
        invoice_reference=intent_data.invoice_reference,
    )

    return PaymentIntentCreated(
        intent_id=intent.id,
        qr_url=PaymentIntentService.qr_url(intent),
        expires_at=intent.expires_at,
    )


@router.post("/confirm", response_model=LedgerEntryResponse)
async def confirm_payment_intent(
    confirm_data: PaymentIntentConfirm,
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Confirm a payment intent as the authenticated customer.

    Creates one PENDING payment ledger entry; retries return 409.
    """
    entry = await PaymentIntentService.confirm_intent(
        db,
        intent_id=confirm_data.intent_id,
        identity=current_user,
        expected_business_id=confirm_data.business_id,
        origin=get_client_ip(request),
    )
    return LedgerEntryResponse.model_validate(entry)


@router.get("/{intent_id}", response_model=PaymentIntentResponse)
async def get_payment_intent(
    intent_id: UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Fetch a still-usable intent for the confirmation screen."""
    intent = await PaymentIntentService.get_intent(db, intent_id)
    return PaymentIntentResponse.model_validate(intent)
