"""
Admin Operations API Endpoints.

Inspection and replay of ledger cascades parked in the dead letter queue.
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from typing import List, Optional

from housing_ledger.app.db.session import get_db
from housing_ledger.app.models.dlq import DeadLetterQueue, DLQStatus
from housing_ledger.app.models.enums import UserRole
from housing_ledger.app.core.exceptions import NotFoundError
from housing_ledger.app.core.guards import require_role
from housing_ledger.app.core.scope import SystemWide
from housing_ledger.app.domain.pool_fund.surplus_deriver import SurplusDeriver
from housing_ledger.app.schemas.ops import DeadLetterResponse

router = APIRouter(prefix="/admin/ops", tags=["Admin - Ops"])


@router.get("/dlq", response_model=List[DeadLetterResponse])
async def list_dlq_items(
    status: Optional[DLQStatus] = Query(None, description="Filter by status"),
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """List dead letter queue items, newest first."""
    stmt = select(DeadLetterQueue)
    if status is not None:
        stmt = stmt.where(DeadLetterQueue.status == status)
    result = await db.execute(stmt.order_by(desc(DeadLetterQueue.id)))
    return result.scalars().all()


@router.post("/dlq/{dlq_id}/retry", response_model=DeadLetterResponse)
async def retry_dlq_item(
    dlq_id: int = Path(..., description="DLQ Item ID"),
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """
    Replay a failed cascade.

    Success marks the item PROCESSED. A repeated failure increments
    retry_count and returns the cascade error.
    """
    item = await db.get(DeadLetterQueue, dlq_id)
    if item is None:
        raise NotFoundError("DLQ item", dlq_id)

    # The original request was already scope-checked; replay runs as the admin
    scope = SystemWide(actor=current_user.get("sub") or str(current_user["user_id"]))
    await SurplusDeriver.retry_dead_letter(db, item, scope)

    item = await db.get(DeadLetterQueue, dlq_id)
    await db.refresh(item)
    return item
