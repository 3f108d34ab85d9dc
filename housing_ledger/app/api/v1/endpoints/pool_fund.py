"""
Pool Fund API Endpoints.

Append-only ledger of pool fund entries and the balances folded from it.
Every route resolves an explicit scope from the caller's token.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from housing_ledger.app.db.session import get_db
from housing_ledger.app.core.guards import resolve_scope
from housing_ledger.app.core.scope import Scope, describe
from housing_ledger.app.domain.pool_fund.ledger_store import LedgerStore
from housing_ledger.app.domain.pool_fund.balance_calculator import BalanceCalculator
from housing_ledger.app.schemas.ledger import (
    LedgerEntryCreate, LedgerEntryResponse, BalanceResponse, CountySummaryResponse
)

router = APIRouter(prefix="/pool-fund", tags=["Pool Fund"])


@router.get("", response_model=List[LedgerEntryResponse])
async def list_entries(
    county: Optional[str] = Query(None, description="Only entries of this county"),
    client_id: Optional[int] = Query(None, description="Only entries of this client"),
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    """
    List pool fund entries visible to the caller, newest first.
    """
    return await LedgerStore.list_by_scope(db, scope, county=county, client_id=client_id)


@router.post("", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def append_entry(
    entry: LedgerEntryCreate,
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    """
    Append a pool fund entry linked to an existing transaction.

    Entries cannot be edited or deleted afterwards; corrections are new
    entries.
    """
    ledger_entry = await LedgerStore.append_entry(db, entry, scope)
    await db.commit()
    await db.refresh(ledger_entry)
    return ledger_entry


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    """Pool fund balance: deposits minus withdrawals and allocations."""
    balance = await BalanceCalculator.balance(db, scope)
    return BalanceResponse(balance=balance, scope=describe(scope))


@router.get("/balance/county/{county}", response_model=BalanceResponse)
async def get_balance_by_county(
    county: str = Path(..., description="County name"),
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    balance = await BalanceCalculator.balance_by_county(db, county, scope)
    return BalanceResponse(balance=balance, scope=describe(scope), county=county)


@router.get("/summary", response_model=List[CountySummaryResponse])
async def get_summary_by_county(
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    """
    Per-county balances, highest balance first.
    """
    return await BalanceCalculator.summary_by_county(db, scope)
