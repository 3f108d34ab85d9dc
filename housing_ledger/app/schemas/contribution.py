"""
Monthly contribution (housing support) schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import Optional


class MonthlyContributionCreate(BaseModel):
    """Inputs of one client-month. Totals are derived by the engine."""
    client_id: int
    month: str
    rent_amount: Decimal
    subsidy_award: Decimal
    subsidy_received: Decimal
    client_obligation: Decimal
    admin_fee: Decimal
    client_paid: Decimal = Decimal("0.00")
    electricity_fee: Decimal = Decimal("0.00")
    rent_late_fee: Decimal = Decimal("0.00")
    property_id: Optional[int] = None
    notes: Optional[str] = None


class MonthlyContributionUpdate(BaseModel):
    """Partial update. Omitted fields keep their stored value."""
    month: Optional[str] = None
    rent_amount: Optional[Decimal] = None
    subsidy_award: Optional[Decimal] = None
    subsidy_received: Optional[Decimal] = None
    client_obligation: Optional[Decimal] = None
    admin_fee: Optional[Decimal] = None
    client_paid: Optional[Decimal] = None
    electricity_fee: Optional[Decimal] = None
    rent_late_fee: Optional[Decimal] = None
    property_id: Optional[int] = None
    notes: Optional[str] = None


class MonthlyContributionResponse(BaseModel):
    id: int
    client_id: int
    property_id: Optional[int]
    month: str
    rent_amount: Decimal
    subsidy_award: Decimal
    subsidy_received: Decimal
    client_obligation: Decimal
    client_paid: Decimal
    electricity_fee: Decimal
    admin_fee: Decimal
    rent_late_fee: Decimal
    month_pool_total: Decimal
    running_pool_total: Decimal
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PoolTotalResponse(BaseModel):
    total: Decimal
    scope: str
    month: Optional[str] = None


class StaleRunningTotal(BaseModel):
    """A record whose stored running total no longer matches its prefix sum."""
    record_id: int
    company_id: int
    month: str
    stored: Decimal
    expected: Decimal
