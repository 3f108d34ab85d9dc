"""
Surplus Deriver (Domain Logic).

Turns an application approval with a county reimbursement into pool fund
money. Must be transactional and idempotent.

Flow:
1. Approve the application and store the reimbursement
2. Record a county_reimbursement transaction
3. surplus = reimbursement - (rent_paid + deposit_paid)
4. If surplus > 0, deposit it into the pool for the client's county

All writes share one unit of work that commits once. A failure after
step 2 was flushed is reported as PartialCascadeFailure, rolled back and
parked in the dead letter queue for a retry.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from housing_ledger.app.core.config import settings
from housing_ledger.app.core.exceptions import AppException, PartialCascadeFailure, ValidationError
from housing_ledger.app.core.money import CENT, ZERO, optional_amount
from housing_ledger.app.core.scope import Scope, describe
from housing_ledger.app.domain.pool_fund.ledger_store import LedgerStore
from housing_ledger.app.models.application import Application
from housing_ledger.app.models.client import Client
from housing_ledger.app.models.dlq import DeadLetterQueue, DLQStatus
from housing_ledger.app.models.enums import ApplicationStatus, LedgerEntryKind, TransactionType
from housing_ledger.app.models.ledger_entry import LedgerEntry
from housing_ledger.app.models.transaction import Transaction
from housing_ledger.app.schemas.ledger import LedgerEntryCreate
from housing_ledger.app.services.tenant_scope import get_application_in_scope

logger = logging.getLogger("housing_ledger.pool_fund")


class CascadeStep:
    """Names of the cascade steps, as reported in PartialCascadeFailure."""
    REIMBURSEMENT_TRANSACTION = "reimbursement_transaction"
    SURPLUS_DEPOSIT = "surplus_deposit"


@dataclass
class CascadeResult:
    triggered: bool
    transaction: Optional[Transaction] = None
    deposit_entry: Optional[LedgerEntry] = None
    surplus: Optional[Decimal] = None
    completed_steps: List[str] = field(default_factory=list)


class SurplusDeriver:

    TASK_NAME = "surplus_cascade"

    @staticmethod
    def compute_surplus(application: Application, reimbursement: Decimal) -> Decimal:
        return (reimbursement - (application.rent_paid + application.deposit_paid)).quantize(CENT)

    @staticmethod
    async def resolve_county(db: AsyncSession, client_id: int) -> str:
        """County of the applicant, then their site, then the configured fallback."""
        client = await db.get(Client, client_id)
        if client is not None:
            for candidate in (client.county, client.site):
                if candidate and candidate.strip():
                    return candidate.strip()
        return settings.unknown_county

    @staticmethod
    async def on_application_approved(
        db: AsyncSession,
        application: Application,
        previous_reimbursement: Optional[Decimal],
        scope: Scope
    ) -> CascadeResult:
        """
        Run the reimbursement cascade for an approved application.

        A no-op unless the stored reimbursement differs from
        previous_reimbursement. Flushes only; the caller owns the commit.

        Raises:
            PartialCascadeFailure: the deposit step failed after the
                reimbursement transaction was flushed
        """
        if application.status != ApplicationStatus.APPROVED:
            raise ValidationError(
                f"Application {application.id} is {application.status.value}, expected approved",
                field="status"
            )

        reimbursement = application.county_reimbursement
        if reimbursement is None or reimbursement == previous_reimbursement:
            logger.debug("Application %s: reimbursement unchanged, cascade skipped", application.id)
            return CascadeResult(triggered=False)

        approved_at = application.approved_at or datetime.utcnow()
        month = approved_at.strftime("%Y-%m")

        # (a) Reimbursement transaction. Failure here aborts before anything else runs.
        transaction = Transaction(
            application_id=application.id,
            client_id=application.client_id,
            type=TransactionType.COUNTY_REIMBURSEMENT,
            amount=reimbursement,
            description=f"County reimbursement for application {application.id}",
            month=month,
        )
        db.add(transaction)
        await db.flush()
        result = CascadeResult(
            triggered=True,
            transaction=transaction,
            completed_steps=[CascadeStep.REIMBURSEMENT_TRANSACTION],
        )

        # (b) Surplus
        surplus = SurplusDeriver.compute_surplus(application, reimbursement)
        result.surplus = surplus
        if surplus <= ZERO:
            logger.info(
                "Application %s: reimbursement %s leaves no surplus (%s), no deposit",
                application.id, reimbursement, surplus
            )
            return result

        # (c) Deposit into the pool, benefiting the county rather than the client
        try:
            county = await SurplusDeriver.resolve_county(db, application.client_id)
            result.deposit_entry = await LedgerStore.append_entry(
                db,
                LedgerEntryCreate(
                    transaction_id=transaction.id,
                    amount=surplus,
                    kind=LedgerEntryKind.DEPOSIT.value,
                    description=f"Surplus from application {application.id}",
                    county=county,
                    client_id=None,
                    month=month,
                ),
                scope,
            )
        except (AppException, SQLAlchemyError) as exc:
            raise PartialCascadeFailure(
                cascade=SurplusDeriver.TASK_NAME,
                completed_steps=result.completed_steps,
                failed_step=CascadeStep.SURPLUS_DEPOSIT,
                cause=exc,
                context={"application_id": application.id, "transaction_id": transaction.id},
            ) from exc

        result.completed_steps.append(CascadeStep.SURPLUS_DEPOSIT)
        logger.info(
            "Application %s: surplus %s deposited to %s (entry %s)",
            application.id, surplus, result.deposit_entry.county, result.deposit_entry.id
        )
        return result

    @staticmethod
    async def approve_application(
        db: AsyncSession,
        application_id: int,
        county_reimbursement,
        scope: Scope,
        record_dead_letter: bool = True
    ) -> CascadeResult:
        """
        Unit of work: approve, run the cascade, commit once.

        On PartialCascadeFailure everything is rolled back, the failure is
        written to the dead letter queue and re-raised with the queue id.
        """
        reimbursement = optional_amount(county_reimbursement, "county_reimbursement")
        if reimbursement is not None and reimbursement < ZERO:
            raise ValidationError("county_reimbursement must not be negative", field="county_reimbursement")

        application = await get_application_in_scope(db, application_id, scope)
        if application.status == ApplicationStatus.REJECTED:
            raise ValidationError(f"Application {application_id} was rejected and cannot be approved", field="status")

        previous = application.county_reimbursement
        application.status = ApplicationStatus.APPROVED
        if application.approved_at is None:
            application.approved_at = datetime.utcnow()
        if reimbursement is not None:
            application.county_reimbursement = reimbursement

        try:
            await db.flush()
            result = await SurplusDeriver.on_application_approved(db, application, previous, scope)
            await db.commit()
        except PartialCascadeFailure as failure:
            await db.rollback()
            dead_letter_id = None
            if record_dead_letter:
                try:
                    dead_letter_id = await SurplusDeriver.record_failure(
                        db, failure, application_id, reimbursement, previous, scope
                    )
                except SQLAlchemyError:
                    # Surface the cascade failure, not the queue error
                    logger.exception("Application %s: dead letter write failed", application_id)
                    await db.rollback()
            failure.mark_rolled_back(dead_letter_id)
            logger.error(
                "Application %s: cascade rolled back at %s (dead letter %s)",
                application_id, failure.failed_step, dead_letter_id
            )
            raise
        except Exception:
            await db.rollback()
            raise

        logger.info("Application %s approved in %s, steps %s", application_id, describe(scope), result.completed_steps)
        return result

    @staticmethod
    async def record_failure(
        db: AsyncSession,
        failure: PartialCascadeFailure,
        application_id: int,
        reimbursement: Optional[Decimal],
        previous: Optional[Decimal],
        scope: Scope
    ) -> int:
        """Park a failed cascade in the dead letter queue. Commits its own write."""
        item = DeadLetterQueue(
            task_name=SurplusDeriver.TASK_NAME,
            error_message=failure.message,
            payload={
                "application_id": application_id,
                "county_reimbursement": str(reimbursement) if reimbursement is not None else None,
                "previous_reimbursement": str(previous) if previous is not None else None,
                "failed_step": failure.failed_step,
                "completed_steps": failure.completed_steps,
                "scope": describe(scope),
            },
            status=DLQStatus.FAILED,
        )
        db.add(item)
        await db.commit()
        return item.id

    @staticmethod
    async def retry_dead_letter(db: AsyncSession, item: DeadLetterQueue, scope: Scope) -> CascadeResult:
        """
        Replay a parked cascade.

        The failed attempt was rolled back, so replaying is the same
        approval request. Success marks the item PROCESSED.
        """
        if item.task_name != SurplusDeriver.TASK_NAME:
            raise ValidationError(f"No retry handler for task {item.task_name}", field="task_name")
        if item.status == DLQStatus.PROCESSED:
            raise ValidationError(f"Dead letter {item.id} was already processed", field="status")

        payload = item.payload or {}
        item_id = item.id
        try:
            result = await SurplusDeriver.approve_application(
                db,
                payload["application_id"],
                payload.get("county_reimbursement"),
                scope,
                record_dead_letter=False,
            )
        except AppException as exc:
            item = await db.get(DeadLetterQueue, item_id)
            item.status = DLQStatus.FAILED
            item.retry_count += 1
            item.last_retry_at = datetime.utcnow()
            item.error_message = exc.message
            await db.commit()
            raise

        item = await db.get(DeadLetterQueue, item_id)
        item.status = DLQStatus.PROCESSED
        item.retry_count += 1
        item.last_retry_at = datetime.utcnow()
        await db.commit()
        return result
