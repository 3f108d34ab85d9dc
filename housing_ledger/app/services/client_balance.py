"""
Client balance and credit limit store.

Both values are administrative scalars set by staff. They are not derived
from the pool fund ledger and nothing here reconciles them with it.
Negative values are allowed for both.
"""

import logging
from decimal import Decimal
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from housing_ledger.app.core.money import to_amount
from housing_ledger.app.core.scope import Scope, describe
from housing_ledger.app.models.client import Client
from housing_ledger.app.services.tenant_scope import client_filter, get_client_in_scope

logger = logging.getLogger("housing_ledger.clients")


class ClientBalanceStore:

    @staticmethod
    async def get_balance(db: AsyncSession, client_id: int, scope: Scope) -> Decimal:
        client = await get_client_in_scope(db, client_id, scope)
        return client.current_balance

    @staticmethod
    async def set_balance(db: AsyncSession, client_id: int, amount, scope: Scope) -> Decimal:
        value = to_amount(amount, "amount")
        client = await get_client_in_scope(db, client_id, scope)
        client.current_balance = value
        await db.flush()
        logger.info("Client %s balance set to %s", client_id, value)
        return value

    @staticmethod
    async def get_credit_limit(db: AsyncSession, client_id: int, scope: Scope) -> Decimal:
        client = await get_client_in_scope(db, client_id, scope)
        return client.credit_limit

    @staticmethod
    async def set_credit_limit(db: AsyncSession, client_id: int, limit, scope: Scope) -> Decimal:
        value = to_amount(limit, "credit_limit")
        client = await get_client_in_scope(db, client_id, scope)
        client.credit_limit = value
        await db.flush()
        logger.info("Client %s credit limit set to %s", client_id, value)
        return value

    @staticmethod
    async def set_global_credit_limit(db: AsyncSession, limit, scope: Scope) -> int:
        """
        Set the credit limit of every client in scope.

        SystemWide touches all clients, TenantScoped only the tenant's own.
        Returns the number of clients updated.
        """
        value = to_amount(limit, "credit_limit")
        result = await db.execute(select(Client.id).where(client_filter(scope)))
        client_ids = list(result.scalars().all())
        if client_ids:
            await db.execute(
                update(Client)
                .where(Client.id.in_(client_ids))
                .values(credit_limit=value)
                .execution_options(synchronize_session="evaluate")
            )
        logger.info("Credit limit %s applied to %d clients in %s", value, len(client_ids), describe(scope))
        return len(client_ids)
