"""
Monthly Contribution Engine (Domain Logic).

Computes what each client-month adds to or draws from the pool:

    month_pool_total = subsidy_received + client_obligation
                       - rent_amount - admin_fee - electricity_fee - rent_late_fee

and stamps every new record with the running total of its company's
contribution ledger. Writes to a ledger are serialized through the
versioned PoolAggregate row: a writer holding a stale version gets
ConcurrencyConflict instead of a corrupted running total.

Known limitation: editing a record recomputes its month_pool_total but
leaves stored running_pool_total values untouched.
find_stale_running_totals reports the records affected.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from housing_ledger.app.core.exceptions import ConcurrencyConflict, NotFoundError, ValidationError
from housing_ledger.app.core.money import CENT, ZERO, to_non_negative_amount, total
from housing_ledger.app.core.scope import Scope, describe
from housing_ledger.app.domain.pool_fund.ledger_store import validate_month
from housing_ledger.app.models.client import Client
from housing_ledger.app.models.monthly_contribution import MonthlyContributionRecord
from housing_ledger.app.models.pool_aggregate import PoolAggregate
from housing_ledger.app.schemas.contribution import (
    MonthlyContributionCreate,
    MonthlyContributionUpdate,
    StaleRunningTotal,
)
from housing_ledger.app.services.tenant_scope import contribution_filter, get_client_in_scope

logger = logging.getLogger("housing_ledger.contributions")

# Fields that feed month_pool_total
FINANCIAL_FIELDS = (
    "subsidy_received",
    "client_obligation",
    "rent_amount",
    "admin_fee",
    "electricity_fee",
    "rent_late_fee",
)
AMOUNT_FIELDS = FINANCIAL_FIELDS + ("subsidy_award", "client_paid")


def compute_month_pool_total(
    subsidy_received: Decimal,
    client_obligation: Decimal,
    rent_amount: Decimal,
    admin_fee: Decimal,
    electricity_fee: Decimal = ZERO,
    rent_late_fee: Decimal = ZERO
) -> Decimal:
    return (
        subsidy_received + client_obligation
        - rent_amount - admin_fee - electricity_fee - rent_late_fee
    ).quantize(CENT)


class MonthlyContributionEngine:

    @staticmethod
    async def _company_total(db: AsyncSession, company_id: int) -> Decimal:
        """Sum of month_pool_total over every record of the company."""
        stmt = (
            select(MonthlyContributionRecord.month_pool_total)
            .join(Client, Client.id == MonthlyContributionRecord.client_id)
            .where(Client.company_id == company_id)
        )
        result = await db.execute(stmt)
        return total(result.scalars().all())

    @staticmethod
    async def _load_aggregate(db: AsyncSession, company_id: int) -> Optional[PoolAggregate]:
        result = await db.execute(select(PoolAggregate).where(PoolAggregate.company_id == company_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def _flush_versioned(db: AsyncSession, company_id: int, creating_aggregate: bool):
        try:
            await db.flush()
        except StaleDataError as exc:
            logger.warning("Running total of company %s changed concurrently", company_id)
            raise ConcurrencyConflict(details={"company_id": company_id}) from exc
        except IntegrityError as exc:
            if not creating_aggregate:
                raise
            logger.warning("Running total ledger of company %s created concurrently", company_id)
            raise ConcurrencyConflict(details={"company_id": company_id}) from exc

    @staticmethod
    async def create_record(
        db: AsyncSession,
        data: MonthlyContributionCreate,
        scope: Scope
    ) -> MonthlyContributionRecord:
        """
        Create a client-month record with its derived totals.

        running_pool_total = sum of month_pool_total over the company's
        existing records + this record's month_pool_total.

        Flushes only; the caller owns the commit and, on
        ConcurrencyConflict, the rollback and retry.
        """
        client = await get_client_in_scope(db, data.client_id, scope)
        month = validate_month(data.month)
        amounts = {name: to_non_negative_amount(getattr(data, name), name) for name in AMOUNT_FIELDS}

        month_total = compute_month_pool_total(**{name: amounts[name] for name in FINANCIAL_FIELDS})

        aggregate = await MonthlyContributionEngine._load_aggregate(db, client.company_id)
        existing_total = await MonthlyContributionEngine._company_total(db, client.company_id)
        running_total = (existing_total + month_total).quantize(CENT)

        record = MonthlyContributionRecord(
            client_id=client.id,
            property_id=data.property_id,
            month=month,
            month_pool_total=month_total,
            running_pool_total=running_total,
            notes=data.notes,
            **amounts,
        )
        db.add(record)

        creating_aggregate = aggregate is None
        if creating_aggregate:
            aggregate = PoolAggregate(company_id=client.company_id, running_total=running_total, record_count=1)
            db.add(aggregate)
        else:
            aggregate.running_total = running_total
            aggregate.record_count += 1

        await MonthlyContributionEngine._flush_versioned(db, client.company_id, creating_aggregate)

        logger.info(
            "Contribution %s for client %s %s: month %s, running %s",
            record.id, client.id, month, month_total, running_total
        )
        return record

    @staticmethod
    async def update_record(
        db: AsyncSession,
        record_id: int,
        data: MonthlyContributionUpdate,
        scope: Scope
    ) -> MonthlyContributionRecord:
        """
        Apply a partial update.

        month_pool_total is recomputed from the merged fields when any
        financial input is supplied (an explicit 0 counts). Stored running
        totals of this and later records are left as they are.
        """
        record = await db.get(MonthlyContributionRecord, record_id)
        if record is None:
            raise NotFoundError("Monthly contribution record", record_id)
        client = await get_client_in_scope(db, record.client_id, scope)

        changes = data.model_dump(exclude_unset=True)
        if "month" in changes:
            changes["month"] = validate_month(changes["month"])
        for name in AMOUNT_FIELDS:
            if name in changes:
                if changes[name] is None:
                    raise ValidationError(f"{name} cannot be cleared", field=name)
                changes[name] = to_non_negative_amount(changes[name], name)

        for name, value in changes.items():
            setattr(record, name, value)

        if not any(name in changes for name in FINANCIAL_FIELDS):
            await db.flush()
            return record

        record.month_pool_total = compute_month_pool_total(
            **{name: getattr(record, name) for name in FINANCIAL_FIELDS}
        )
        await db.flush()

        # Keep the aggregate equal to the live sum so the next record starts from it
        aggregate = await MonthlyContributionEngine._load_aggregate(db, client.company_id)
        company_total = await MonthlyContributionEngine._company_total(db, client.company_id)
        creating_aggregate = aggregate is None
        if creating_aggregate:
            count_stmt = select(MonthlyContributionRecord.id).join(
                Client, Client.id == MonthlyContributionRecord.client_id
            ).where(Client.company_id == client.company_id)
            record_count = len((await db.execute(count_stmt)).scalars().all())
            db.add(PoolAggregate(company_id=client.company_id, running_total=company_total, record_count=record_count))
        else:
            aggregate.running_total = company_total
        await MonthlyContributionEngine._flush_versioned(db, client.company_id, creating_aggregate)

        logger.info(
            "Contribution %s updated: month total now %s, stored running totals not recomputed",
            record.id, record.month_pool_total
        )
        return record

    @staticmethod
    async def list_records(
        db: AsyncSession,
        scope: Scope,
        client_id: Optional[int] = None,
        month: Optional[str] = None
    ) -> List[MonthlyContributionRecord]:
        if client_id is not None:
            await get_client_in_scope(db, client_id, scope)
        stmt = select(MonthlyContributionRecord).where(contribution_filter(scope))
        if client_id is not None:
            stmt = stmt.where(MonthlyContributionRecord.client_id == client_id)
        if month is not None:
            stmt = stmt.where(MonthlyContributionRecord.month == validate_month(month))
        stmt = stmt.order_by(MonthlyContributionRecord.id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def monthly_total(db: AsyncSession, month: str, scope: Scope) -> Decimal:
        """Sum of month_pool_total for one month across all clients in scope."""
        stmt = select(MonthlyContributionRecord.month_pool_total).where(
            contribution_filter(scope),
            MonthlyContributionRecord.month == validate_month(month),
        )
        result = await db.execute(stmt)
        return total(result.scalars().all())

    @staticmethod
    async def running_total(db: AsyncSession, scope: Scope) -> Decimal:
        """Sum of month_pool_total over every record in scope, regardless of month."""
        stmt = select(MonthlyContributionRecord.month_pool_total).where(contribution_filter(scope))
        result = await db.execute(stmt)
        return total(result.scalars().all())

    @staticmethod
    async def find_stale_running_totals(db: AsyncSession, scope: Scope) -> List[StaleRunningTotal]:
        """
        Recompute each company's prefix sums in insertion order and report
        records whose stored running_pool_total differs.
        """
        stmt = (
            select(MonthlyContributionRecord, Client.company_id)
            .join(Client, Client.id == MonthlyContributionRecord.client_id)
            .where(contribution_filter(scope))
            .order_by(Client.company_id, MonthlyContributionRecord.id)
        )
        result = await db.execute(stmt)

        prefix: Dict[int, Decimal] = {}
        stale = []
        for record, company_id in result.all():
            expected = (prefix.get(company_id, ZERO) + record.month_pool_total).quantize(CENT)
            prefix[company_id] = expected
            if record.running_pool_total != expected:
                stale.append(StaleRunningTotal(
                    record_id=record.id,
                    company_id=company_id,
                    month=record.month,
                    stored=record.running_pool_total,
                    expected=expected,
                ))

        if stale:
            logger.info("%d stale running totals in %s", len(stale), describe(scope))
        return stale
