"""
Ledger Store (Domain Logic).

Append-only storage and scoped retrieval of pool fund entries and of the
transactions they are linked to. There is deliberately no update or
delete path; the models reject both at flush time.
"""

import logging
import re
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from housing_ledger.app.core.exceptions import ScopeViolation, ValidationError
from housing_ledger.app.core.money import to_non_negative_amount
from housing_ledger.app.core.scope import Scope, TenantScoped, describe
from housing_ledger.app.models.enums import LedgerEntryKind
from housing_ledger.app.models.ledger_entry import LedgerEntry
from housing_ledger.app.models.transaction import Transaction
from housing_ledger.app.schemas.ledger import LedgerEntryCreate, TransactionCreate
from housing_ledger.app.services.tenant_scope import (
    company_of_transaction,
    get_application_in_scope,
    get_client_in_scope,
    get_transaction_in_scope,
    ledger_entry_filter,
    transaction_filter,
)

logger = logging.getLogger("housing_ledger.pool_fund")

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def validate_month(month: Optional[str], field: str = "month") -> str:
    """Require a YYYY-MM month string."""
    if not month or not MONTH_PATTERN.match(month):
        raise ValidationError(f"{field} must use the YYYY-MM format, got {month!r}", field=field)
    return month


def parse_kind(kind) -> LedgerEntryKind:
    try:
        return LedgerEntryKind(kind)
    except ValueError:
        allowed = ", ".join(k.value for k in LedgerEntryKind)
        raise ValidationError(f"kind must be one of {allowed}, got {kind!r}", field="kind")


class LedgerStore:

    @staticmethod
    async def append_entry(db: AsyncSession, entry: LedgerEntryCreate, scope: Scope) -> LedgerEntry:
        """
        Append a pool fund entry.

        Flow:
        1. Validate amount (non-negative, two places), kind, county and month
        2. Resolve the linked transaction inside the scope
        3. Resolve the optional client inside the scope, same tenant as the transaction
        4. Insert (flush only, the caller owns the commit)

        Raises:
            ValidationError: malformed field
            NotFoundError: unknown transaction or client
            ScopeViolation: transaction or client outside the caller's tenant
        """
        amount = to_non_negative_amount(entry.amount)
        kind = parse_kind(entry.kind)
        county = (entry.county or "").strip()
        if not county:
            raise ValidationError("county is required", field="county")
        month = validate_month(entry.month) if entry.month is not None else None

        transaction = await get_transaction_in_scope(db, entry.transaction_id, scope)

        if entry.client_id is not None:
            client = await get_client_in_scope(db, entry.client_id, scope)
            transaction_company = await company_of_transaction(db, transaction)
            if transaction_company is not None and transaction_company != client.company_id:
                raise ScopeViolation(
                    "Entry client and linked transaction belong to different tenants",
                    details={"client_id": client.id, "transaction_id": transaction.id}
                )

        ledger_entry = LedgerEntry(
            transaction_id=transaction.id,
            client_id=entry.client_id,
            kind=kind,
            amount=amount,
            description=entry.description,
            county=county,
            site_id=entry.site_id,
            month=month,
        )
        db.add(ledger_entry)
        await db.flush()

        logger.info(
            "Pool fund %s of %s appended to %s (entry %s, transaction %s)",
            kind.value, amount, county, ledger_entry.id, transaction.id
        )
        return ledger_entry

    @staticmethod
    async def list_by_scope(
        db: AsyncSession,
        scope: Scope,
        county: Optional[str] = None,
        client_id: Optional[int] = None,
        newest_first: bool = True
    ) -> List[LedgerEntry]:
        """Entries visible to the scope, optionally narrowed to a county or client. Read-only."""
        if client_id is not None:
            await get_client_in_scope(db, client_id, scope)

        stmt = select(LedgerEntry).where(ledger_entry_filter(scope))
        if county is not None:
            stmt = stmt.where(LedgerEntry.county == county)
        if client_id is not None:
            stmt = stmt.where(LedgerEntry.client_id == client_id)

        if newest_first:
            stmt = stmt.order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
        else:
            stmt = stmt.order_by(LedgerEntry.id)

        result = await db.execute(stmt)
        return list(result.scalars().all())


class TransactionLog:

    @staticmethod
    async def append_transaction(db: AsyncSession, data: TransactionCreate, scope: Scope) -> Transaction:
        """
        Record a transaction.

        Tenant callers must link the transaction to one of their clients or
        applications, otherwise it would be unreachable from their scope.
        """
        amount = to_non_negative_amount(data.amount)
        month = validate_month(data.month) if data.month is not None else None

        client_company = None
        if data.client_id is not None:
            client_company = (await get_client_in_scope(db, data.client_id, scope)).company_id
        if data.application_id is not None:
            application = await get_application_in_scope(db, data.application_id, scope)
            if data.client_id is not None and application.client_id != data.client_id:
                raise ValidationError(
                    f"Application {application.id} does not belong to client {data.client_id}",
                    field="application_id"
                )
        elif client_company is None and isinstance(scope, TenantScoped):
            raise ValidationError("Transaction must reference a client or an application", field="client_id")

        transaction = Transaction(
            application_id=data.application_id,
            client_id=data.client_id,
            type=data.type,
            sub_type=data.sub_type,
            amount=amount,
            description=data.description,
            payment_method=data.payment_method,
            check_number=data.check_number,
            confirmation_number=data.confirmation_number,
            payment_date=data.payment_date,
            month=month,
            notes=data.notes,
        )
        db.add(transaction)
        await db.flush()

        logger.info("Transaction %s (%s %s) recorded in %s", transaction.id, data.type.value, amount, describe(scope))
        return transaction

    @staticmethod
    async def list_by_scope(
        db: AsyncSession,
        scope: Scope,
        client_id: Optional[int] = None,
        application_id: Optional[int] = None
    ) -> List[Transaction]:
        if client_id is not None:
            await get_client_in_scope(db, client_id, scope)
        if application_id is not None:
            await get_application_in_scope(db, application_id, scope)

        stmt = select(Transaction).where(transaction_filter(scope))
        if client_id is not None:
            stmt = stmt.where(Transaction.client_id == client_id)
        if application_id is not None:
            stmt = stmt.where(Transaction.application_id == application_id)
        stmt = stmt.order_by(Transaction.created_at.desc(), Transaction.id.desc())

        result = await db.execute(stmt)
        return list(result.scalars().all())
