"""Deal endpoints and the deal discussion notes."""

from __future__ import annotations

from fastapi import APIRouter, Response

from crmdash.auth.deps import PrincipalDep
from crmdash.auth.policy import scope_filter
from crmdash.db.deps import DealsRepoDep, PropertiesRepoDep, TeamRepoDep
from crmdash.rest.guards import (
    changes,
    found,
    load_deal,
    require_member_of,
    require_mutate,
    require_no_dependents,
)
from crmdash.rest.schemas import DealCreate, DealOut, DealUpdate, NoteCreate, NoteOut, PropertyOut

router = APIRouter(prefix="/deals", tags=["deals"])


@router.get("")
async def list_deals(
    principal: PrincipalDep,
    repo: DealsRepoDep,
    status: str | None = None,
    assigned_to: int | None = None,
    property_id: int | None = None,
) -> dict:
    rows = await repo.list(
        scope_filter(principal), status=status, assigned_to=assigned_to, property_id=property_id
    )
    return {"deals": [DealOut.model_validate(r) for r in rows]}


@router.post("", status_code=201, response_model=DealOut)
async def create_deal(
    body: DealCreate,
    principal: PrincipalDep,
    repo: DealsRepoDep,
    properties: PropertiesRepoDep,
    team: TeamRepoDep,
) -> DealOut:
    prop = found(await properties.get(body.property_id), "Property")
    require_mutate(principal, prop.organisation_id, "property")
    await require_member_of(team, body.assigned_to, prop.organisation_id)
    deal = await repo.create(
        initial_note=body.initial_note,
        team_member_id=principal.team_member_id,
        **body.model_dump(exclude={"initial_note"}),
    )
    return DealOut.model_validate(deal)


@router.get("/{deal_id}")
async def get_deal(
    deal_id: int, principal: PrincipalDep, repo: DealsRepoDep, properties: PropertiesRepoDep
) -> dict:
    deal, _ = await load_deal(repo, deal_id, principal)
    prop = await properties.get(deal.property_id)
    notes = await repo.list_notes(deal.id)
    return {
        "deal": DealOut.model_validate(deal),
        "property": PropertyOut.model_validate(prop) if prop is not None else None,
        "notes": [NoteOut.model_validate(n) for n in notes],
    }


@router.put("/{deal_id}")
async def update_deal(
    deal_id: int,
    body: DealUpdate,
    principal: PrincipalDep,
    repo: DealsRepoDep,
    properties: PropertiesRepoDep,
    team: TeamRepoDep,
) -> dict:
    deal, tenant = await load_deal(repo, deal_id, principal, mutate=True)
    data = changes(body, "name", "property_id", "status")
    if "property_id" in data and data["property_id"] != deal.property_id:
        target = found(await properties.get(data["property_id"]), "Property")
        require_mutate(principal, target.organisation_id, "property")
        tenant = target.organisation_id
    if "assigned_to" in data:
        await require_member_of(team, data["assigned_to"], tenant)
    deal = await repo.update(deal, **data)
    return {"deal": DealOut.model_validate(deal)}


@router.delete("/{deal_id}", status_code=204)
async def delete_deal(deal_id: int, principal: PrincipalDep, repo: DealsRepoDep) -> Response:
    deal, _ = await load_deal(repo, deal_id, principal, mutate=True)
    require_no_dependents(
        await repo.dependent_counts(deal.id),
        "Cannot delete deal with associated notes, tasks, meetings or documents",
    )
    await repo.delete(deal)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


@router.get("/{deal_id}/notes")
async def list_notes(deal_id: int, principal: PrincipalDep, repo: DealsRepoDep) -> dict:
    deal, _ = await load_deal(repo, deal_id, principal)
    notes = await repo.list_notes(deal.id)
    return {"notes": [NoteOut.model_validate(n) for n in notes]}


@router.post("/{deal_id}/notes", status_code=201, response_model=NoteOut)
async def add_note(deal_id: int, body: NoteCreate, principal: PrincipalDep, repo: DealsRepoDep) -> NoteOut:
    deal, _ = await load_deal(repo, deal_id, principal, mutate=True)
    note = await repo.add_note(deal.id, body.comments, team_member_id=principal.team_member_id)
    return NoteOut.model_validate(note)
