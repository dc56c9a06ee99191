"""
FastAPI Application Entry Point.

This is the main application file for the Ledger & Settlement Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from ledger_backend.app.core.config import settings
from ledger_backend.app.core.observability import ObservabilityMiddleware, setup_logging
from ledger_backend.app.api.v1.router import router as api_v1_router
from ledger_backend.app.db.session import DatabaseSessionManager
from ledger_backend.app.services.finalization_scheduler import FinalizationScheduler
from ledger_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from ledger_backend.app.models.business import Business, Customer
from ledger_backend.app.models.payment_intent import PaymentIntent
from ledger_backend.app.models.debt_request import DebtRequest
from ledger_backend.app.models.ledger_entry import LedgerEntry
from ledger_backend.app.models.ledger_event import LedgerEvent


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging and opens the database pool.
    2. Creates database tables.
    3. Starts the finalization worker when an interval is configured.
    4. Stops the worker and disposes the pool on shutdown.
    """
    setup_logging(settings.log_level)

    db_manager = DatabaseSessionManager(
        settings.database_url,
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )
    app.state.db = db_manager
    await db_manager.create_all()

    scheduler = None
    if settings.finalization_interval_seconds > 0:
        scheduler = FinalizationScheduler(db_manager, settings.finalization_interval_seconds)
        scheduler.start()

    yield

    if scheduler is not None:
        await scheduler.stop()
    await db_manager.close()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Ledger and settlement engine: payment intents, debt requests, finalization and balances",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")
