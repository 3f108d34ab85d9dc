"""
Bearer token validation.

Tokens are minted by the external authentication service. The ledger
only verifies the signature and expiry and hands back the claims.
"""

import logging
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from housing_ledger.app.core.config import settings

logger = logging.getLogger("housing_ledger.auth")


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the verified claims (sub, user_id, role, company_id), or None if the token is rejected."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        logger.info("Rejected bearer token: %s", exc)
        return None
