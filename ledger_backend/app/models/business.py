"""
Business and Customer database models.

Both are owned by external collaborators (business management and onboarding);
only the columns needed for ownership and scope checks live here.
"""

import uuid

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric, Uuid, UniqueConstraint
from sqlalchemy.sql import func
from ledger_backend.app.db.session import Base


class Business(Base):
    """A merchant's business profile."""
    __tablename__ = "businesses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_user_id = Column(Integer, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Business(id={self.id}, name='{self.name}', owner={self.owner_user_id})>"


class Customer(Base):
    """
    Customer model.

    One row per (business, user) pair; this is the wallet a user holds with a
    business. Created by the merchant or lazily on the first payment.
    """
    __tablename__ = "customers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey('businesses.id'), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)

    name = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    credit_limit = Column(Numeric(14, 2), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('business_id', 'user_id', name='uq_customer_business_user'),
    )

    def __repr__(self):
        return f"<Customer(id={self.id}, business_id={self.business_id}, user_id={self.user_id})>"
