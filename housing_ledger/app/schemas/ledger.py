"""
Pool fund ledger schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from housing_ledger.app.models.enums import LedgerEntryKind, TransactionType, PaymentMethod


class LedgerEntryCreate(BaseModel):
    """
    Schema for appending a pool fund entry.

    Amount and kind are checked by the ledger store so that malformed
    entries fail with the ledger's own ValidationError.
    """
    transaction_id: int
    amount: Decimal
    kind: str
    description: str = Field(..., min_length=1, max_length=255)
    county: str
    client_id: Optional[int] = None
    site_id: Optional[int] = None
    month: Optional[str] = None


class LedgerEntryResponse(BaseModel):
    """Schema for displaying a pool fund entry."""
    id: int
    transaction_id: int
    amount: Decimal
    kind: LedgerEntryKind
    description: str
    client_id: Optional[int]
    county: str
    site_id: Optional[int]
    month: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class BalanceResponse(BaseModel):
    balance: Decimal
    scope: str
    county: Optional[str] = None


class CountySummaryResponse(BaseModel):
    """Per-county fold of the pool fund."""
    county: str
    balance: Decimal
    total_deposits: Decimal
    total_withdrawals: Decimal
    entry_count: int


class TransactionCreate(BaseModel):
    """Schema for recording a transaction."""
    type: TransactionType
    amount: Decimal
    description: str = Field(..., min_length=1, max_length=255)
    application_id: Optional[int] = None
    client_id: Optional[int] = None
    sub_type: Optional[str] = Field(None, max_length=50)
    payment_method: Optional[PaymentMethod] = None
    check_number: Optional[str] = Field(None, max_length=50)
    confirmation_number: Optional[str] = Field(None, max_length=100)
    payment_date: Optional[date] = None
    month: Optional[str] = None
    notes: Optional[str] = None


class TransactionResponse(BaseModel):
    """Schema for displaying a transaction."""
    id: int
    application_id: Optional[int]
    client_id: Optional[int]
    type: TransactionType
    sub_type: Optional[str]
    amount: Decimal
    description: str
    payment_method: Optional[PaymentMethod]
    check_number: Optional[str]
    confirmation_number: Optional[str]
    payment_date: Optional[date]
    month: Optional[str]
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
