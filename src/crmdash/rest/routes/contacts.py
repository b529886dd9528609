"""Contact endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response

from crmdash.auth.deps import PrincipalDep
from crmdash.auth.policy import scope_filter
from crmdash.db.deps import ContactsRepoDep
from crmdash.rest.guards import (
    changes,
    found,
    require_mutate,
    require_no_dependents,
    require_view,
    target_tenant,
)
from crmdash.rest.schemas import ContactCreate, ContactOut, ContactUpdate, PropertyOut

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.get("")
async def list_contacts(principal: PrincipalDep, repo: ContactsRepoDep, q: str | None = None) -> dict:
    rows = await repo.list(scope_filter(principal), q=q)
    return {"contacts": [ContactOut.model_validate(r) for r in rows]}


@router.post("", status_code=201, response_model=ContactOut)
async def create_contact(body: ContactCreate, principal: PrincipalDep, repo: ContactsRepoDep) -> ContactOut:
    tenant = target_tenant(principal, body.organisation_id)
    contact = await repo.create(tenant, **body.model_dump(exclude={"organisation_id"}))
    return ContactOut.model_validate(contact)


@router.get("/{contact_id}")
async def get_contact(contact_id: int, principal: PrincipalDep, repo: ContactsRepoDep) -> dict:
    contact = found(await repo.get(contact_id), "Contact")
    require_view(principal, contact.organisation_id, "contact")
    properties = await repo.list_properties(contact.id)
    return {
        "contact": ContactOut.model_validate(contact),
        "properties": [PropertyOut.model_validate(p) for p in properties],
    }


@router.put("/{contact_id}")
async def update_contact(
    contact_id: int, body: ContactUpdate, principal: PrincipalDep, repo: ContactsRepoDep
) -> dict:
    contact = found(await repo.get(contact_id), "Contact")
    require_mutate(principal, contact.organisation_id, "contact")
    contact = await repo.update(contact, **changes(body, "name"))
    return {"contact": ContactOut.model_validate(contact)}


@router.delete("/{contact_id}", status_code=204)
async def delete_contact(contact_id: int, principal: PrincipalDep, repo: ContactsRepoDep) -> Response:
    contact = found(await repo.get(contact_id), "Contact")
    require_mutate(principal, contact.organisation_id, "contact")
    require_no_dependents(
        {"propertyCount": await repo.count_properties(contact.id)},
        "Cannot delete contact with associated properties",
    )
    await repo.delete(contact)
    return Response(status_code=204)
