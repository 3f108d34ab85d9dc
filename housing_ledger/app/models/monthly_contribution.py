"""
Monthly contribution database model.

One row per client and month, mirroring the housing support spreadsheet:
what the client's subsidy arrangement adds to, or draws from, the pool.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, String, Text
from sqlalchemy.sql import func
from housing_ledger.app.db.session import Base
from housing_ledger.app.db.types import Money


class MonthlyContributionRecord(Base):
    """
    Monthly contribution record.

    month_pool_total and running_pool_total are derived on write.
    running_pool_total is not corrected when an earlier record is edited.
    """
    __tablename__ = "monthly_contributions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    client_id = Column(Integer, ForeignKey('clients.id'), nullable=False, index=True)
    property_id = Column(Integer, nullable=True)
    month = Column(String(7), nullable=False, index=True)  # YYYY-MM

    # Inputs
    rent_amount = Column(Money, nullable=False)
    subsidy_award = Column(Money, nullable=False)
    subsidy_received = Column(Money, nullable=False)
    client_obligation = Column(Money, nullable=False)
    client_paid = Column(Money, nullable=False, default=0)
    electricity_fee = Column(Money, nullable=False, default=0)
    admin_fee = Column(Money, nullable=False)
    rent_late_fee = Column(Money, nullable=False, default=0)

    # Derived
    month_pool_total = Column(Money, nullable=False)
    running_pool_total = Column(Money, nullable=False)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<MonthlyContributionRecord(id={self.id}, client_id={self.client_id}, month='{self.month}', total={self.month_pool_total})>"
