"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from ledger_backend.app.api.v1.endpoints import (
    payment_intents, debt_requests, ledger, cron
)

router = APIRouter()

# Payment Intent Manager
router.include_router(payment_intents.router)

# Debt Request Workflow
router.include_router(debt_requests.router)

# Ledger reads (entries, history, balances)
router.include_router(ledger.router)

# Finalization trigger
router.include_router(cron.router)
