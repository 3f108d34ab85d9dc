"""
Housing application database model.

Approval of an application with a county reimbursement drives the
surplus cascade into the pool fund.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from housing_ledger.app.db.session import Base
from housing_ledger.app.db.types import Money
from housing_ledger.app.models.enums import ApplicationStatus


class Application(Base):
    """
    Application model.

    Status flow: PENDING -> APPROVED | REJECTED.
    """
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    client_id = Column(Integer, ForeignKey('clients.id'), nullable=False, index=True)
    property_id = Column(Integer, nullable=False)

    # Financials
    rent_paid = Column(Money, nullable=False)
    deposit_paid = Column(Money, nullable=False)
    application_fee = Column(Money, nullable=False, default=0)
    county_reimbursement = Column(Money, nullable=True)

    status = Column(Enum(ApplicationStatus), default=ApplicationStatus.PENDING, nullable=False, index=True)

    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Application(id={self.id}, client_id={self.client_id}, status='{self.status.value}')>"
