"""
Transaction API Endpoints.

Records the payments a pool fund entry can be linked to.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from housing_ledger.app.db.session import get_db
from housing_ledger.app.core.guards import resolve_scope
from housing_ledger.app.core.scope import Scope
from housing_ledger.app.domain.pool_fund.ledger_store import TransactionLog
from housing_ledger.app.schemas.ledger import TransactionCreate, TransactionResponse

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.get("", response_model=List[TransactionResponse])
async def list_transactions(
    client_id: Optional[int] = Query(None),
    application_id: Optional[int] = Query(None),
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    """List transactions visible to the caller, newest first."""
    return await TransactionLog.list_by_scope(db, scope, client_id=client_id, application_id=application_id)


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    data: TransactionCreate,
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a transaction.

    Tenant callers must reference one of their clients or applications.
    """
    transaction = await TransactionLog.append_transaction(db, data, scope)
    await db.commit()
    await db.refresh(transaction)
    return transaction
