"""
Custom column types.

Money is stored as integer cents so every backend (PostgreSQL in
production, SQLite in tests) keeps amounts exact.
"""

from decimal import Decimal
from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

from housing_ledger.app.core.money import CENT, to_amount


class Money(TypeDecorator):
    """Decimal amount with two places, persisted as BIGINT cents."""

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(to_amount(value) * 100)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return (Decimal(int(value)) * CENT).quantize(CENT)
