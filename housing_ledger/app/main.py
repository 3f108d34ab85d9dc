"""
FastAPI Application Entry Point.

This is the main application file for the Housing Ledger API.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from housing_ledger.app.core.config import settings
from housing_ledger.app.api.v1.router import router as api_v1_router
from housing_ledger.app.db.session import engine, Base
from housing_ledger.app.core.observability import ObservabilityMiddleware, configure_logging
from housing_ledger.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from housing_ledger.app.models.company import Company
from housing_ledger.app.models.client import Client
from housing_ledger.app.models.application import Application
from housing_ledger.app.models.transaction import Transaction
from housing_ledger.app.models.ledger_entry import LedgerEntry
from housing_ledger.app.models.monthly_contribution import MonthlyContributionRecord
from housing_ledger.app.models.pool_aggregate import PoolAggregate
from housing_ledger.app.models.dlq import DeadLetterQueue

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Pooled-fund accounting for housing support programs",
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


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Housing Ledger API",
        "docs": "/docs",
        "health": "/health",
    }
