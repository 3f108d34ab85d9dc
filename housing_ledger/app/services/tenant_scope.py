"""
Tenant scope resolution.

Ledger rows carry no company column. A row belongs to a tenant when it is
reachable from one of the tenant's clients:

    company -> client -> application -> transaction -> ledger entry

This module builds those joins as SQL filters and performs the ownership
checks used before any write.
"""

from typing import Optional
from sqlalchemy import or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession

from housing_ledger.app.core.exceptions import NotFoundError, ScopeViolation
from housing_ledger.app.core.scope import Scope, SystemWide, TenantScoped
from housing_ledger.app.models.application import Application
from housing_ledger.app.models.client import Client
from housing_ledger.app.models.ledger_entry import LedgerEntry
from housing_ledger.app.models.monthly_contribution import MonthlyContributionRecord
from housing_ledger.app.models.transaction import Transaction


def _tenant_clients(company_id: int):
    return select(Client.id).where(Client.company_id == company_id)


def _tenant_applications(company_id: int):
    return select(Application.id).where(Application.client_id.in_(_tenant_clients(company_id)))


def _tenant_transactions(company_id: int):
    return select(Transaction.id).where(
        or_(
            Transaction.client_id.in_(_tenant_clients(company_id)),
            Transaction.application_id.in_(_tenant_applications(company_id)),
        )
    )


def ledger_entry_filter(scope: Scope):
    """WHERE clause restricting LedgerEntry rows to the scope."""
    if isinstance(scope, SystemWide):
        return true()
    return or_(
        LedgerEntry.client_id.in_(_tenant_clients(scope.company_id)),
        LedgerEntry.transaction_id.in_(_tenant_transactions(scope.company_id)),
    )


def transaction_filter(scope: Scope):
    """WHERE clause restricting Transaction rows to the scope."""
    if isinstance(scope, SystemWide):
        return true()
    return Transaction.id.in_(_tenant_transactions(scope.company_id))


def contribution_filter(scope: Scope):
    """WHERE clause restricting MonthlyContributionRecord rows to the scope."""
    if isinstance(scope, SystemWide):
        return true()
    return MonthlyContributionRecord.client_id.in_(_tenant_clients(scope.company_id))


def client_filter(scope: Scope):
    if isinstance(scope, SystemWide):
        return true()
    return Client.company_id == scope.company_id


def _check_company(scope: Scope, company_id: Optional[int], resource: str, resource_id: int):
    if isinstance(scope, TenantScoped) and company_id != scope.company_id:
        raise ScopeViolation(
            f"{resource} {resource_id} belongs to another tenant",
            details={"resource": resource, "id": resource_id}
        )


async def get_client_in_scope(db: AsyncSession, client_id: int, scope: Scope) -> Client:
    """Load a client, failing with NotFoundError or ScopeViolation."""
    client = await db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client", client_id)
    _check_company(scope, client.company_id, "Client", client_id)
    return client


async def get_application_in_scope(db: AsyncSession, application_id: int, scope: Scope) -> Application:
    application = await db.get(Application, application_id)
    if application is None:
        raise NotFoundError("Application", application_id)
    client = await db.get(Client, application.client_id)
    _check_company(scope, client.company_id if client else None, "Application", application_id)
    return application


async def company_of_transaction(db: AsyncSession, transaction: Transaction) -> Optional[int]:
    """Company a transaction is reachable from, None if it is linked to no client."""
    client_id = transaction.client_id
    if client_id is None and transaction.application_id is not None:
        application = await db.get(Application, transaction.application_id)
        client_id = application.client_id if application else None
    if client_id is None:
        return None
    client = await db.get(Client, client_id)
    return client.company_id if client else None


async def get_transaction_in_scope(db: AsyncSession, transaction_id: int, scope: Scope) -> Transaction:
    transaction = await db.get(Transaction, transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction", transaction_id)
    if isinstance(scope, TenantScoped):
        _check_company(scope, await company_of_transaction(db, transaction), "Transaction", transaction_id)
    return transaction
