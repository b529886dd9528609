"""Multi-tenant access policy.

Pure functions over a verified Principal. A superadmin sees every tenant; any
other principal sees only rows whose ``organisation_id`` equals its own, and a
principal that has not finished onboarding (no tenant) sees none.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy import Select, false

from crmdash.auth.models import Principal

_S = TypeVar("_S", bound=Select)


def can_view(principal: Principal, resource_tenant_id: int | None) -> bool:
    if principal.is_superadmin:
        return True
    if principal.organisation_id is None or resource_tenant_id is None:
        return False
    return principal.organisation_id == resource_tenant_id


def can_mutate(principal: Principal, resource_tenant_id: int | None) -> bool:
    # No write permission finer than tenant membership.
    return can_view(principal, resource_tenant_id)


@dataclass(frozen=True)
class TenantFilter:
    """List-query predicate derived from a principal.

    ``unrestricted`` means no tenant predicate. Otherwise rows must match
    ``organisation_id``; a ``None`` organisation matches nothing.
    """

    unrestricted: bool
    organisation_id: int | None = None

    def allows(self, tenant_id: int | None) -> bool:
        if self.unrestricted:
            return True
        return self.organisation_id is not None and tenant_id == self.organisation_id

    def apply(self, stmt: _S, column) -> _S:
        """Add the tenant predicate on ``column`` to a SQLAlchemy select."""
        if self.unrestricted:
            return stmt
        if self.organisation_id is None:
            return stmt.where(false())
        return stmt.where(column == self.organisation_id)


UNRESTRICTED = TenantFilter(unrestricted=True)


def scope_filter(principal: Principal) -> TenantFilter:
    if principal.is_superadmin:
        return UNRESTRICTED
    return TenantFilter(unrestricted=False, organisation_id=principal.organisation_id)
