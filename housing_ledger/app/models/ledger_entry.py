"""
Pool fund ledger entry database model.

Immutable record of surplus subsidy money entering or leaving the pool.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum, String
from sqlalchemy.sql import func
from housing_ledger.app.db.session import Base
from housing_ledger.app.db.types import Money
from housing_ledger.app.db.append_only import append_only
from housing_ledger.app.models.enums import LedgerEntryKind


@append_only
class LedgerEntry(Base):
    """
    Ledger Entry model.

    Deposits add to the pool, withdrawals and allocations draw from it.
    Every entry is linked to the transaction that caused it.
    NO updates or deletions allowed.
    """
    __tablename__ = "pool_fund_entries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Linkage
    transaction_id = Column(Integer, ForeignKey('transactions.id'), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey('clients.id'), nullable=True, index=True)  # set for withdrawals

    # Entry details
    kind = Column(Enum(LedgerEntryKind), nullable=False)
    amount = Column(Money, nullable=False)
    description = Column(String(255), nullable=False)

    # Scope dimensions
    county = Column(String(100), nullable=False, index=True)
    site_id = Column(Integer, nullable=True)
    month = Column(String(7), nullable=True)  # YYYY-MM

    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<LedgerEntry(id={self.id}, kind='{self.kind.value}', amount={self.amount}, county='{self.county}')>"
