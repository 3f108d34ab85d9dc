"""
Authentication dependencies for FastAPI.

The ledger trusts bearer tokens minted by the external auth service and
only reads the identity and tenant claims it needs.
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from housing_ledger.app.core.exceptions import AuthenticationError
from housing_ledger.app.core.jwt import decode_access_token

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Checks:
    1. Validates JWT token signature and expiry
    2. Requires a user_id and role claim

    Returns:
        Decoded token payload (sub, user_id, role, company_id)

    Raises:
        AuthenticationError: 401 if the token is invalid or incomplete
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    if not payload.get("user_id") or not payload.get("role"):
        raise AuthenticationError("Invalid token payload")

    return payload
