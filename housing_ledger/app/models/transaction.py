"""
Transaction database model.

Immutable record of money paid or received on behalf of a client. One
application approval may produce several transactions.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Date, Enum, String, Text
from sqlalchemy.sql import func
from housing_ledger.app.db.session import Base
from housing_ledger.app.db.types import Money
from housing_ledger.app.db.append_only import append_only
from housing_ledger.app.models.enums import TransactionType, PaymentMethod


@append_only
class Transaction(Base):
    """
    Transaction model.

    NO updates or deletions allowed.
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Linkage (either may be empty, tenant reachability needs at least one)
    application_id = Column(Integer, ForeignKey('applications.id'), nullable=True, index=True)
    client_id = Column(Integer, ForeignKey('clients.id'), nullable=True, index=True)

    type = Column(Enum(TransactionType), nullable=False)
    sub_type = Column(String(50), nullable=True)
    amount = Column(Money, nullable=False)
    description = Column(String(255), nullable=False)

    # Payment metadata
    payment_method = Column(Enum(PaymentMethod), nullable=True)
    check_number = Column(String(50), nullable=True)
    confirmation_number = Column(String(100), nullable=True)
    payment_date = Column(Date, nullable=True)
    month = Column(String(7), nullable=True)  # YYYY-MM
    notes = Column(Text, nullable=True)

    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Transaction(id={self.id}, type='{self.type.value}', amount={self.amount})>"
