"""Meeting endpoints, nested under deals for listing and creation."""

from __future__ import annotations

from fastapi import APIRouter, Response

from crmdash.auth.deps import PrincipalDep
from crmdash.db.deps import DealsRepoDep, MeetingsRepoDep, TeamRepoDep
from crmdash.rest.guards import found, load_deal, require_member_of, require_mutate, require_view
from crmdash.rest.schemas import MeetingCreate, MeetingNoteCreate, MeetingNoteOut, MeetingOut

router = APIRouter(tags=["meetings"])


@router.get("/deals/{deal_id}/meetings")
async def list_meetings(deal_id: int, principal: PrincipalDep, deals: DealsRepoDep, repo: MeetingsRepoDep) -> dict:
    deal, _ = await load_deal(deals, deal_id, principal)
    rows = await repo.list_for_deal(deal.id)
    return {"meetings": [MeetingOut.model_validate(r) for r in rows]}


@router.post("/deals/{deal_id}/meetings", status_code=201, response_model=MeetingOut)
async def create_meeting(
    deal_id: int,
    body: MeetingCreate,
    principal: PrincipalDep,
    deals: DealsRepoDep,
    repo: MeetingsRepoDep,
    team: TeamRepoDep,
) -> MeetingOut:
    deal, tenant = await load_deal(deals, deal_id, principal, mutate=True)
    team_member_id = body.team_member_id if body.team_member_id is not None else principal.team_member_id
    await require_member_of(team, body.team_member_id, tenant)
    data = body.model_dump(exclude={"team_member_id"})
    meeting = await repo.create(deal_id=deal.id, team_member_id=team_member_id, **data)
    return MeetingOut.model_validate(meeting)


@router.get("/meetings/{meeting_id}")
async def get_meeting(meeting_id: int, principal: PrincipalDep, repo: MeetingsRepoDep) -> dict:
    meeting, tenant = found(await repo.get_with_tenant(meeting_id), "Meeting")
    require_view(principal, tenant, "meeting")
    notes = await repo.list_notes(meeting.id)
    return {
        "meeting": MeetingOut.model_validate(meeting),
        "notes": [MeetingNoteOut.model_validate(n) for n in notes],
    }


@router.delete("/meetings/{meeting_id}", status_code=204)
async def delete_meeting(meeting_id: int, principal: PrincipalDep, repo: MeetingsRepoDep) -> Response:
    meeting, tenant = found(await repo.get_with_tenant(meeting_id), "Meeting")
    require_mutate(principal, tenant, "meeting")
    await repo.delete(meeting)
    return Response(status_code=204)


@router.post("/meetings/{meeting_id}/notes", status_code=201, response_model=MeetingNoteOut)
async def add_meeting_note(
    meeting_id: int, body: MeetingNoteCreate, principal: PrincipalDep, repo: MeetingsRepoDep
) -> MeetingNoteOut:
    meeting, tenant = found(await repo.get_with_tenant(meeting_id), "Meeting")
    require_mutate(principal, tenant, "meeting")
    note = await repo.add_note(meeting.id, body.content, team_member_id=principal.team_member_id)
    return MeetingNoteOut.model_validate(note)
