"""
Debt Request database model.

Merchant-issued claim against a customer, awaiting the customer's decision.
"""

import uuid

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Numeric, Enum, Uuid
from sqlalchemy.sql import func
from ledger_backend.app.db.session import Base
from ledger_backend.app.models.ledger_enums import Currency, DebtRequestStatus, enum_values


class DebtRequest(Base):
    """
    Debt Request model.

    Follows a one-step consent workflow: REQUESTED -> APPROVED (ledger entry
    created) or REQUESTED -> REJECTED (no ledger effect).
    """
    __tablename__ = "debt_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Parties
    business_id = Column(Uuid, ForeignKey('businesses.id'), nullable=False, index=True)
    customer_id = Column(Uuid, ForeignKey('customers.id'), nullable=False, index=True)
    created_by_staff_id = Column(Integer, nullable=False)

    # Financials
    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(Enum(Currency, name="currency", values_callable=enum_values), nullable=False)
    credit_limit_snapshot = Column(Numeric(14, 2), nullable=False, default=0)

    due_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    # Status
    status = Column(
        Enum(DebtRequestStatus, name="debt_request_status", values_callable=enum_values),
        default=DebtRequestStatus.REQUESTED,
        nullable=False,
        index=True,
    )

    # Consent Flow
    merchant_confirmed_at = Column(DateTime(timezone=True), nullable=False)
    customer_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(String(500), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<DebtRequest(id={self.id}, status='{self.status.value}', amount={self.amount})>"
