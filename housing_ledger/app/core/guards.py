"""
Security guards for role-based access and tenant scope resolution.

Provides dependencies for protecting endpoints and for turning the
caller's token into an explicit ledger Scope.
"""

import logging
from typing import List, Optional
from fastapi import Depends, Query
from housing_ledger.app.models.enums import UserRole
from housing_ledger.app.core.dependencies import get_current_user
from housing_ledger.app.core.exceptions import InsufficientPermissionsError, ScopeViolation, ValidationError
from housing_ledger.app.core.scope import Scope, SystemWide, TenantScoped

logger = logging.getLogger("housing_ledger.audit")


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.put("/clients/{client_id}/balance")
        async def set_balance(current_user: dict = Depends(require_role([UserRole.ADMIN]))):
            ...

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates user role

    Raises:
        InsufficientPermissionsError 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        user_role_str = current_user.get("role")

        # Convert string role to UserRole enum
        try:
            user_role = UserRole(user_role_str)
        except ValueError:
            raise InsufficientPermissionsError("Invalid role in token", details={"role": user_role_str})

        if user_role not in allowed_roles:
            raise InsufficientPermissionsError(
                f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}",
                details={"role": user_role.value}
            )

        return current_user

    return role_checker


def scope_for_user(
    current_user: dict,
    company_id: Optional[int] = None,
    system_wide: bool = False
) -> Scope:
    """
    Resolve the ledger scope a caller is allowed to act in.

    Tenant users are always pinned to the company in their token.
    Administrators have to choose: a company_id or system_wide=True.

    Raises:
        ScopeViolation: tenant user asked for another company or for system-wide data
        ValidationError: administrator made no explicit choice
    """
    role = current_user.get("role")
    username = current_user.get("sub") or str(current_user.get("user_id"))

    if role == UserRole.ADMIN.value:
        if system_wide and company_id is not None:
            raise ValidationError("Pass either company_id or system_wide, not both", field="system_wide")
        if system_wide:
            logger.info("System-wide ledger access", extra={"actor": username})
            return SystemWide(actor=username)
        if company_id is not None:
            return TenantScoped(company_id=company_id)
        raise ValidationError(
            "Administrators must pass company_id or system_wide=true",
            field="company_id"
        )

    own_company = current_user.get("company_id")
    if own_company is None:
        raise ScopeViolation("Token carries no company", details={"user_id": current_user.get("user_id")})
    if system_wide:
        raise ScopeViolation("System-wide access requires the ADMIN role")
    if company_id is not None and company_id != own_company:
        raise ScopeViolation(details={"requested_company_id": company_id})
    return TenantScoped(company_id=own_company)


async def resolve_scope(
    company_id: Optional[int] = Query(None, description="Tenant to act in (administrators only)"),
    system_wide: bool = Query(False, description="Explicit cross-tenant request (administrators only)"),
    current_user: dict = Depends(get_current_user)
) -> Scope:
    """FastAPI dependency wrapping scope_for_user."""
    return scope_for_user(current_user, company_id=company_id, system_wide=system_wide)
