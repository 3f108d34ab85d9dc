"""
Housing Support API Endpoints.

Monthly contribution records and the pool totals derived from them.
Writes that lose the running-total race are retried here, never in the
engine.
"""

import logging
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from housing_ledger.app.db.session import get_db
from housing_ledger.app.core.config import settings
from housing_ledger.app.core.exceptions import ConcurrencyConflict
from housing_ledger.app.core.guards import resolve_scope
from housing_ledger.app.core.scope import Scope, describe
from housing_ledger.app.domain.pool_fund.contribution_engine import MonthlyContributionEngine
from housing_ledger.app.schemas.contribution import (
    MonthlyContributionCreate,
    MonthlyContributionUpdate,
    MonthlyContributionResponse,
    PoolTotalResponse,
    StaleRunningTotal,
)

logger = logging.getLogger("housing_ledger.contributions")

router = APIRouter(prefix="/housing-support", tags=["Housing Support"])


async def _with_conflict_retry(db: AsyncSession, write):
    """
    Run `write(db)` and commit, retrying on ConcurrencyConflict.

    Each failed attempt is rolled back so the next one reloads the
    aggregate version.
    """
    attempts = max(settings.running_total_max_retries, 1)
    for attempt in range(1, attempts + 1):
        try:
            record = await write(db)
            await db.commit()
            return record
        except ConcurrencyConflict:
            await db.rollback()
            if attempt == attempts:
                logger.warning("Running total conflict persisted after %d attempts", attempts)
                raise
            logger.info("Running total conflict, retrying (attempt %d of %d)", attempt + 1, attempts)


@router.get("", response_model=List[MonthlyContributionResponse])
async def list_records(
    client_id: Optional[int] = Query(None),
    month: Optional[str] = Query(None, description="YYYY-MM"),
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    """List monthly contribution records in insertion order."""
    return await MonthlyContributionEngine.list_records(db, scope, client_id=client_id, month=month)


@router.post("", response_model=MonthlyContributionResponse, status_code=status.HTTP_201_CREATED)
async def create_record(
    data: MonthlyContributionCreate,
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a monthly contribution record.

    month_pool_total and running_pool_total are derived; any values sent
    for them are ignored.
    """
    record = await _with_conflict_retry(
        db, lambda session: MonthlyContributionEngine.create_record(session, data, scope)
    )
    await db.refresh(record)
    return record


@router.put("/{record_id}", response_model=MonthlyContributionResponse)
async def update_record(
    data: MonthlyContributionUpdate,
    record_id: int = Path(..., description="Record ID"),
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    """
    Partially update a record.

    Changing a financial field recomputes month_pool_total. Stored running
    totals are not rewritten; see /housing-support/running-total-audit.
    """
    record = await _with_conflict_retry(
        db, lambda session: MonthlyContributionEngine.update_record(session, record_id, data, scope)
    )
    await db.refresh(record)
    return record


@router.get("/pool-total/month/{month}", response_model=PoolTotalResponse)
async def get_monthly_total(
    month: str = Path(..., description="YYYY-MM"),
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    total = await MonthlyContributionEngine.monthly_total(db, month, scope)
    return PoolTotalResponse(total=total, scope=describe(scope), month=month)


@router.get("/pool-total/running", response_model=PoolTotalResponse)
async def get_running_total(
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    total = await MonthlyContributionEngine.running_total(db, scope)
    return PoolTotalResponse(total=total, scope=describe(scope))


@router.get("/running-total-audit", response_model=List[StaleRunningTotal])
async def audit_running_totals(
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    """
    Records whose stored running_pool_total no longer matches the
    recomputed prefix sum of their company ledger. Read-only.
    """
    return await MonthlyContributionEngine.find_stale_running_totals(db, scope)
