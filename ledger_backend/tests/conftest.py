"""
Centralized Test Configuration.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.pool import Pool, StaticPool

from ledger_backend.app.main import app
from ledger_backend.app.db.session import DatabaseSessionManager, Base
from ledger_backend.app.core.clock import utcnow
from ledger_backend.app.models.business import Business, Customer
from ledger_backend.app.models.ledger_entry import LedgerEntry
from ledger_backend.app.models.ledger_enums import Currency, EntryStatus, EntryType
from helpers import MERCHANT_ID, CUSTOMER_USER_ID, STRANGER_ID, CASHIER_ID, OTHER_MERCHANT_ID, auth_headers

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

@pytest.fixture(autouse=True)
async def db_manager():
    """Fresh in-memory database per test, attached to the app like the lifespan does."""
    manager = DatabaseSessionManager(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await manager.create_all()
    app.state.db = manager

    yield manager

    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await manager.close()

@pytest.fixture
async def client(db_manager):
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

# Shared session for fixture data creation
@pytest.fixture
async def db_session(db_manager):
    async with db_manager.session() as session:
        yield session

@pytest.fixture
def merchant_headers():
    return auth_headers(MERCHANT_ID, roles=["merchant"])

@pytest.fixture
def customer_headers():
    return auth_headers(CUSTOMER_USER_ID, roles=["user"], name="Amal", phone="+967700000000")

@pytest.fixture
def stranger_headers():
    return auth_headers(STRANGER_ID, roles=["user"])

@pytest.fixture
def cashier_headers():
    return auth_headers(CASHIER_ID, roles=["cashier"])

@pytest.fixture
async def business(db_session):
    shop = Business(owner_user_id=MERCHANT_ID, name="Corner Shop", is_active=True)
    db_session.add(shop)
    await db_session.commit()
    return shop

@pytest.fixture
async def other_business(db_session):
    shop = Business(owner_user_id=OTHER_MERCHANT_ID, name="Pharmacy", is_active=True)
    db_session.add(shop)
    await db_session.commit()
    return shop

@pytest.fixture
async def customer(db_session, business):
    wallet = Customer(
        business_id=business.id,
        user_id=CUSTOMER_USER_ID,
        name="Amal",
        phone="+967700000000",
        credit_limit=Decimal("500.00"),
    )
    db_session.add(wallet)
    await db_session.commit()
    return wallet

@pytest.fixture
def make_entry(db_session):
    """Insert a ledger entry directly, bypassing the confirmation workflows."""
    async def _make_entry(business_id, customer_id, amount, currency=Currency.SAR,
                          status=EntryStatus.FINALIZED, finalizes_at=None, **fields):
        amount = Decimal(amount)
        now = utcnow()
        entry = LedgerEntry(
            business_id=business_id,
            customer_id=customer_id,
            amount=amount,
            currency=currency,
            entry_type=EntryType.PAYMENT if amount > 0 else EntryType.DEBT,
            status=status,
            finalizes_at=finalizes_at or now + timedelta(hours=24),
            merchant_confirmed_at=now,
            customer_confirmed_at=now,
            created_at=fields.pop("created_at", now),
            **fields,
        )
        db_session.add(entry)
        await db_session.commit()
        return entry

    return _make_entry
