"""Boundary helpers that turn access-policy answers into HTTP errors."""

from __future__ import annotations

from typing import TypeVar

from crmdash.auth.models import Principal
from crmdash.auth.policy import can_mutate, can_view
from crmdash.errors import DeleteBlocked, Forbidden, NotFound, ValidationFailed

_T = TypeVar("_T")


def found(row: _T | None, label: str) -> _T:
    if row is None:
        raise NotFound(f"{label} not found")
    return row


def require_view(principal: Principal, tenant_id: int | None, label: str = "resource") -> None:
    if not can_view(principal, tenant_id):
        raise Forbidden(f"You do not have permission to view this {label}")


def require_mutate(principal: Principal, tenant_id: int | None, label: str = "resource") -> None:
    if not can_mutate(principal, tenant_id):
        raise Forbidden(f"You do not have permission to modify this {label}")


def target_tenant(principal: Principal, requested: int | None) -> int:
    """Organisation a newly created row belongs to.

    Defaults to the principal's own tenant. Only a superadmin may name
    another one.
    """
    if principal.is_superadmin:
        tenant = requested if requested is not None else principal.organisation_id
        if tenant is None:
            raise ValidationFailed("organisation_id is required")
        return tenant
    if principal.organisation_id is None:
        raise Forbidden("User does not belong to an organization")
    if requested is not None and requested != principal.organisation_id:
        raise Forbidden("You cannot create resources in another organization")
    return principal.organisation_id


def require_no_dependents(counts: dict[str, int], message: str) -> None:
    if any(counts.values()):
        raise DeleteBlocked(message, **counts)


def changes(body, *required: str) -> dict:
    """Fields the client actually sent; ``required`` ones may not be nulled."""
    data = body.model_dump(exclude_unset=True)
    for field in required:
        if field in data and data[field] is None:
            raise ValidationFailed(f"{field}: must not be null")
    return data


async def load_deal(deals, deal_id: int, principal: Principal, *, mutate: bool = False):
    """Fetch a deal with its owning tenant, enforcing the access policy."""
    row = found(await deals.get_with_tenant(deal_id), "Deal")
    deal, tenant = row
    if mutate:
        require_mutate(principal, tenant, "deal")
    else:
        require_view(principal, tenant, "deal")
    return deal, tenant


async def require_member_of(team, team_member_id: int | None, tenant: int | None) -> None:
    if team_member_id is None:
        return
    member = await team.get(team_member_id)
    if member is None or member.organisation_id != tenant:
        raise ValidationFailed("Team member not found in this organization")
