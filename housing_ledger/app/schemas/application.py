"""
Application approval schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from housing_ledger.app.models.enums import ApplicationStatus
from housing_ledger.app.schemas.ledger import LedgerEntryResponse, TransactionResponse


class ApplicationApproveRequest(BaseModel):
    """Approve an application, optionally recording the county reimbursement."""
    county_reimbursement: Optional[Decimal] = None


class ApplicationResponse(BaseModel):
    id: int
    client_id: int
    property_id: int
    rent_paid: Decimal
    deposit_paid: Decimal
    application_fee: Decimal
    county_reimbursement: Optional[Decimal]
    status: ApplicationStatus
    submitted_at: datetime
    approved_at: Optional[datetime]

    class Config:
        from_attributes = True


class ApprovalResponse(BaseModel):
    """Outcome of an approval and its surplus cascade."""
    application: ApplicationResponse
    cascade_triggered: bool
    surplus: Optional[Decimal]
    completed_steps: List[str]
    transaction: Optional[TransactionResponse]
    deposit_entry: Optional[LedgerEntryResponse]
