"""
Balance Calculator (Domain Logic).

Folds pool fund entries into balances. Read-only and uncached: every call
recomputes from the full set of entries visible to the scope.

    balance = sum(deposits) - sum(withdrawals + allocations)
"""

from decimal import Decimal
from typing import Dict, Iterable, List
from sqlalchemy.ext.asyncio import AsyncSession

from housing_ledger.app.core.money import CENT, ZERO
from housing_ledger.app.core.scope import Scope
from housing_ledger.app.domain.pool_fund.ledger_store import LedgerStore
from housing_ledger.app.models.enums import LedgerEntryKind
from housing_ledger.app.models.ledger_entry import LedgerEntry
from housing_ledger.app.schemas.ledger import CountySummaryResponse


def signed_amount(entry: LedgerEntry) -> Decimal:
    """Deposits count positive, withdrawals and allocations negative."""
    if entry.kind == LedgerEntryKind.DEPOSIT:
        return entry.amount
    return -entry.amount


def fold(entries: Iterable[LedgerEntry]) -> Decimal:
    balance = ZERO
    for entry in entries:
        balance += signed_amount(entry)
    return balance.quantize(CENT)


class BalanceCalculator:

    @staticmethod
    async def balance(db: AsyncSession, scope: Scope) -> Decimal:
        """Pool fund balance over every entry visible to the scope."""
        entries = await LedgerStore.list_by_scope(db, scope, newest_first=False)
        return fold(entries)

    @staticmethod
    async def balance_by_county(db: AsyncSession, county: str, scope: Scope) -> Decimal:
        """Pool fund balance of one county within the scope."""
        entries = await LedgerStore.list_by_scope(db, scope, county=county, newest_first=False)
        return fold(entries)

    @staticmethod
    async def summary_by_county(db: AsyncSession, scope: Scope) -> List[CountySummaryResponse]:
        """
        Single pass grouping by county.

        Sorted by balance descending. Counties with equal balances keep
        the order in which they first appear in the ledger.
        """
        entries = await LedgerStore.list_by_scope(db, scope, newest_first=False)

        groups: Dict[str, dict] = {}
        for entry in entries:
            group = groups.setdefault(entry.county, {
                "county": entry.county,
                "balance": ZERO,
                "total_deposits": ZERO,
                "total_withdrawals": ZERO,
                "entry_count": 0,
            })
            group["entry_count"] += 1
            group["balance"] += signed_amount(entry)
            if entry.kind == LedgerEntryKind.DEPOSIT:
                group["total_deposits"] += entry.amount
            else:
                group["total_withdrawals"] += entry.amount

        summaries = [
            CountySummaryResponse(
                county=group["county"],
                balance=group["balance"].quantize(CENT),
                total_deposits=group["total_deposits"].quantize(CENT),
                total_withdrawals=group["total_withdrawals"].quantize(CENT),
                entry_count=group["entry_count"],
            )
            for group in groups.values()
        ]
        # sorted() is stable, so ties keep first-seen county order
        return sorted(summaries, key=lambda summary: summary.balance, reverse=True)
