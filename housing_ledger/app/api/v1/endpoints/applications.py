"""
Application API Endpoints.

Approval is the only write exposed here: it triggers the county
reimbursement cascade into the pool fund.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from housing_ledger.app.db.session import get_db
from housing_ledger.app.core.guards import resolve_scope
from housing_ledger.app.core.scope import Scope
from housing_ledger.app.domain.pool_fund.surplus_deriver import SurplusDeriver
from housing_ledger.app.schemas.application import (
    ApplicationApproveRequest, ApplicationResponse, ApprovalResponse
)
from housing_ledger.app.schemas.ledger import LedgerEntryResponse, TransactionResponse
from housing_ledger.app.services.tenant_scope import get_application_in_scope

router = APIRouter(prefix="/applications", tags=["Applications"])


@router.post("/{application_id}/approve", response_model=ApprovalResponse)
async def approve_application(
    application_id: int = Path(..., description="Application ID"),
    request: Optional[ApplicationApproveRequest] = None,
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    """
    Approve an application.

    Flow:
    1. Mark the application approved and store the county reimbursement
    2. Record the reimbursement transaction
    3. Deposit any surplus over rent and deposit paid into the county pool

    Repeating an approval with the same reimbursement changes nothing.
    A failed deposit rolls the whole approval back (500, ERR_CASCADE_001)
    and parks it in the dead letter queue.
    """
    county_reimbursement = request.county_reimbursement if request else None
    result = await SurplusDeriver.approve_application(db, application_id, county_reimbursement, scope)

    application = await get_application_in_scope(db, application_id, scope)
    await db.refresh(application)
    transaction = None
    if result.transaction is not None:
        await db.refresh(result.transaction)
        transaction = TransactionResponse.model_validate(result.transaction)
    deposit_entry = None
    if result.deposit_entry is not None:
        await db.refresh(result.deposit_entry)
        deposit_entry = LedgerEntryResponse.model_validate(result.deposit_entry)

    return ApprovalResponse(
        application=ApplicationResponse.model_validate(application),
        cascade_triggered=result.triggered,
        surplus=result.surplus,
        completed_steps=result.completed_steps,
        transaction=transaction,
        deposit_entry=deposit_entry,
    )
