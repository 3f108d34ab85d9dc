"""
Tenant scope for ledger reads and writes.

Every ledger operation receives exactly one of these values. There is no
"None means everything" default: a system-wide aggregate has to be asked
for with SystemWide.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TenantScoped:
    """Restricts an operation to data reachable from one company."""
    company_id: int


@dataclass(frozen=True)
class SystemWide:
    """Explicit cross-tenant request. Reserved for the audited admin path."""
    actor: str = "system"


Scope = Union[TenantScoped, SystemWide]


def describe(scope: Scope) -> str:
    if isinstance(scope, TenantScoped):
        return f"company:{scope.company_id}"
    return f"system-wide:{scope.actor}"
