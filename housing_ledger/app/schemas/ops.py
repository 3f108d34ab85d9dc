"""
Admin operations schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Any, Dict, Optional
from housing_ledger.app.models.dlq import DLQStatus


class DeadLetterResponse(BaseModel):
    id: int
    task_name: str
    error_message: str
    payload: Optional[Dict[str, Any]]
    status: DLQStatus
    retry_count: int
    created_at: datetime
    last_retry_at: Optional[datetime]

    class Config:
        from_attributes = True
