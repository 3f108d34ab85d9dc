"""
Client Balance API Endpoints.

Administrative balance and credit limit scalars. Reads follow the caller's
scope; writes additionally require an administrator role.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from housing_ledger.app.db.session import get_db
from housing_ledger.app.models.enums import UserRole
from housing_ledger.app.core.guards import require_role, resolve_scope
from housing_ledger.app.core.money import CENT
from housing_ledger.app.core.scope import Scope, describe
from housing_ledger.app.services.client_balance import ClientBalanceStore
from housing_ledger.app.schemas.client_balance import (
    AmountUpdate,
    ClientBalanceResponse,
    ClientCreditLimitResponse,
    GlobalCreditLimitResponse,
)

router = APIRouter(prefix="/clients", tags=["Client Balances"])

WRITE_ROLES = [UserRole.ADMIN, UserRole.COMPANY_ADMIN]


@router.put("/credit-limit", response_model=GlobalCreditLimitResponse)
async def set_global_credit_limit(
    data: AmountUpdate,
    current_user: dict = Depends(require_role(WRITE_ROLES)),
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    """
    Set the credit limit of every client in scope.

    Company administrators reach their own clients only; a platform
    administrator needs system_wide=true to touch every tenant.
    """
    updated = await ClientBalanceStore.set_global_credit_limit(db, data.amount, scope)
    await db.commit()
    return GlobalCreditLimitResponse(
        credit_limit=data.amount.quantize(CENT),
        clients_updated=updated,
        scope=describe(scope),
    )


@router.get("/{client_id}/balance", response_model=ClientBalanceResponse)
async def get_balance(
    client_id: int = Path(..., description="Client ID"),
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    balance = await ClientBalanceStore.get_balance(db, client_id, scope)
    return ClientBalanceResponse(client_id=client_id, balance=balance)


@router.put("/{client_id}/balance", response_model=ClientBalanceResponse)
async def set_balance(
    data: AmountUpdate,
    client_id: int = Path(..., description="Client ID"),
    current_user: dict = Depends(require_role(WRITE_ROLES)),
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    """Overwrite the client's balance. Negative balances are allowed."""
    balance = await ClientBalanceStore.set_balance(db, client_id, data.amount, scope)
    await db.commit()
    return ClientBalanceResponse(client_id=client_id, balance=balance)


@router.get("/{client_id}/credit-limit", response_model=ClientCreditLimitResponse)
async def get_credit_limit(
    client_id: int = Path(..., description="Client ID"),
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    credit_limit = await ClientBalanceStore.get_credit_limit(db, client_id, scope)
    return ClientCreditLimitResponse(client_id=client_id, credit_limit=credit_limit)


@router.put("/{client_id}/credit-limit", response_model=ClientCreditLimitResponse)
async def set_credit_limit(
    data: AmountUpdate,
    client_id: int = Path(..., description="Client ID"),
    current_user: dict = Depends(require_role(WRITE_ROLES)),
    scope: Scope = Depends(resolve_scope),
    db: AsyncSession = Depends(get_db)
):
    credit_limit = await ClientBalanceStore.set_credit_limit(db, client_id, data.amount, scope)
    await db.commit()
    return ClientCreditLimitResponse(client_id=client_id, credit_limit=credit_limit)
