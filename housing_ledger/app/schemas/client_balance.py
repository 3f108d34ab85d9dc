"""
Client balance and credit limit schemas.
"""

from pydantic import BaseModel
from decimal import Decimal


class AmountUpdate(BaseModel):
    amount: Decimal


class ClientBalanceResponse(BaseModel):
    client_id: int
    balance: Decimal


class ClientCreditLimitResponse(BaseModel):
    client_id: int
    credit_limit: Decimal


class GlobalCreditLimitResponse(BaseModel):
    credit_limit: Decimal
    clients_updated: int
    scope: str
