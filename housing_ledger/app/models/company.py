"""
Company database model.

A company is one tenant organization of the housing administration tool.
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from housing_ledger.app.db.session import Base


class Company(Base):
    """Tenant organization. Every client belongs to exactly one company."""
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Company(id={self.id}, name='{self.name}')>"
