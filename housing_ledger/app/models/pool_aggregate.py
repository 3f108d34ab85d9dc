"""
Pool aggregate database model.

Versioned running total of one company's contribution ledger. Every
write to the ledger bumps the version, so two writers that read the same
version cannot both commit.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime
from sqlalchemy.sql import func
from housing_ledger.app.db.session import Base
from housing_ledger.app.db.types import Money


class PoolAggregate(Base):
    __tablename__ = "pool_aggregates"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, unique=True)

    running_total = Column(Money, nullable=False, default=0)
    record_count = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<PoolAggregate(company_id={self.company_id}, running_total={self.running_total}, version={self.version})>"
