"""
Client database model.

Only the fields the pool fund ledger relies on are mapped here; the
surrounding client management screens own the rest of the record.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.sql import func
from housing_ledger.app.db.session import Base
from housing_ledger.app.db.types import Money
from housing_ledger.app.core.config import settings


class Client(Base):
    """
    Client model.

    `current_balance` and `credit_limit` are administrative scalars. They
    are set directly and are never derived from or reconciled with the
    pool fund ledger.
    """
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)

    # County where the client is served, and the housing site label
    county = Column(String(100), nullable=True, index=True)
    site = Column(String(100), nullable=True)

    current_balance = Column(Money, nullable=False, default=0)
    credit_limit = Column(Money, nullable=False, default=lambda: settings.default_credit_limit)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Client(id={self.id}, company_id={self.company_id}, county='{self.county}')>"
