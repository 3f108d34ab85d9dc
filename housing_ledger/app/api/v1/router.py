"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from housing_ledger.app.api.v1.endpoints import (
    pool_fund, transactions, applications,
    housing_support, client_balances, admin_ops
)

router = APIRouter()

# Pool fund ledger and balances
router.include_router(pool_fund.router)
router.include_router(transactions.router)

# Approval cascade
router.include_router(applications.router)

# Monthly contributions
router.include_router(housing_support.router)

# Administrative client scalars
router.include_router(client_balances.router)

# Dead letter queue
router.include_router(admin_ops.router)
