"""Property endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response

from crmdash.auth.deps import PrincipalDep
from crmdash.auth.policy import scope_filter
from crmdash.db.deps import ContactsRepoDep, PropertiesRepoDep
from crmdash.db.repositories.contacts import ContactsRepo
from crmdash.errors import ValidationFailed
from crmdash.rest.guards import (
    changes,
    found,
    require_mutate,
    require_no_dependents,
    require_view,
    target_tenant,
)
from crmdash.rest.schemas import ContactOut, PropertyCreate, PropertyOut, PropertyUpdate

router = APIRouter(prefix="/properties", tags=["properties"])


async def _check_owner(contacts: ContactsRepo, owner_id: int | None, tenant: int) -> None:
    if owner_id is None:
        return
    owner = await contacts.get(owner_id)
    if owner is None or owner.organisation_id != tenant:
        raise ValidationFailed("Owner contact not found in this organization")


@router.get("")
async def list_properties(
    principal: PrincipalDep, repo: PropertiesRepoDep, status: str | None = None
) -> dict:
    rows = await repo.list(scope_filter(principal), status=status)
    return {"properties": [PropertyOut.model_validate(r) for r in rows]}


@router.post("", status_code=201, response_model=PropertyOut)
async def create_property(
    body: PropertyCreate,
    principal: PrincipalDep,
    repo: PropertiesRepoDep,
    contacts: ContactsRepoDep,
) -> PropertyOut:
    tenant = target_tenant(principal, body.organisation_id)
    await _check_owner(contacts, body.owner_id, tenant)
    prop = await repo.create(tenant, **body.model_dump(exclude={"organisation_id"}))
    return PropertyOut.model_validate(prop)


@router.get("/{property_id}")
async def get_property(
    property_id: int, principal: PrincipalDep, repo: PropertiesRepoDep, contacts: ContactsRepoDep
) -> dict:
    prop = found(await repo.get(property_id), "Property")
    require_view(principal, prop.organisation_id, "property")
    owner = await contacts.get(prop.owner_id) if prop.owner_id is not None else None
    return {
        "property": PropertyOut.model_validate(prop),
        "owner": ContactOut.model_validate(owner) if owner is not None else None,
    }


@router.put("/{property_id}")
async def update_property(
    property_id: int,
    body: PropertyUpdate,
    principal: PrincipalDep,
    repo: PropertiesRepoDep,
    contacts: ContactsRepoDep,
) -> dict:
    prop = found(await repo.get(property_id), "Property")
    require_mutate(principal, prop.organisation_id, "property")
    data = changes(body, "name")
    if "owner_id" in data:
        await _check_owner(contacts, data["owner_id"], prop.organisation_id)
    prop = await repo.update(prop, **data)
    return {"property": PropertyOut.model_validate(prop)}


@router.delete("/{property_id}", status_code=204)
async def delete_property(property_id: int, principal: PrincipalDep, repo: PropertiesRepoDep) -> Response:
    prop = found(await repo.get(property_id), "Property")
    require_mutate(principal, prop.organisation_id, "property")
    require_no_dependents(
        await repo.dependent_counts(prop.id),
        "Cannot delete property with associated deals or documents",
    )
    await repo.delete(prop)
    return Response(status_code=204)
