"""
Payment Intent database model.

Short-lived, merchant-issued request for payment backing a QR code.
"""

import uuid

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, Enum, Uuid, CheckConstraint
from sqlalchemy.sql import func
from ledger_backend.app.db.session import Base
from ledger_backend.app.models.ledger_enums import Currency, PaymentIntentStatus, enum_values


class PaymentIntent(Base):
    """
    Payment Intent model.

    Lifecycle: CREATED -> USED (exactly once, with a ledger entry) or
    CREATED -> EXPIRED (lazily, on a late confirmation attempt).
    """
    __tablename__ = "payment_intents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    business_id = Column(Uuid, ForeignKey('businesses.id'), nullable=False, index=True)
    created_by_staff_id = Column(Integer, nullable=False)

    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(Enum(Currency, name="currency", values_callable=enum_values), nullable=False)
    invoice_reference = Column(String(255), nullable=True)

    status = Column(
        Enum(PaymentIntentStatus, name="payment_intent_status", values_callable=enum_values),
        default=PaymentIntentStatus.CREATED,
        nullable=False,
        index=True,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_intent_amount_positive"),
    )

    def __repr__(self):
        return f"<PaymentIntent(id={self.id}, status='{self.status.value}', amount={self.amount})>"
