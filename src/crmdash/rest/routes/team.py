"""Team member endpoints and invitations."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import structlog
from fastapi import APIRouter, Response

from crmdash.auth.deps import PrincipalDep, SettingsDep, TokenCodecDep
from crmdash.auth.models import InvitationClaims, Role
from crmdash.auth.policy import scope_filter
from crmdash.auth.service import normalise_email
from crmdash.db.deps import TeamRepoDep
from crmdash.errors import ValidationFailed
from crmdash.rest.guards import (
    changes,
    found,
    require_mutate,
    require_no_dependents,
    require_view,
    target_tenant,
)
from crmdash.rest.schemas import (
    InvitationOut,
    InviteRequest,
    TeamMemberCreate,
    TeamMemberOut,
    TeamMemberUpdate,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/team", tags=["team"])


@router.get("")
async def list_team(principal: PrincipalDep, repo: TeamRepoDep) -> dict:
    rows = await repo.list(scope_filter(principal))
    return {"teamMembers": [TeamMemberOut.model_validate(r) for r in rows]}


@router.post("", status_code=201, response_model=TeamMemberOut)
async def create_team_member(body: TeamMemberCreate, principal: PrincipalDep, repo: TeamRepoDep) -> TeamMemberOut:
    tenant = target_tenant(principal, body.organisation_id)
    email = normalise_email(body.team_member_email_id)
    if await repo.get_by_email(tenant, email) is not None:
        raise ValidationFailed("A team member with this email already exists")
    # The creator's own record is linked to their account unless one already is.
    user_id = None
    if email == normalise_email(principal.email) and await repo.get_for_user(principal.user_id) is None:
        user_id = principal.user_id
    member = await repo.create(
        tenant, team_member_name=body.team_member_name, team_member_email_id=email, user_id=user_id
    )
    return TeamMemberOut.model_validate(member)


@router.post("/invite", status_code=201)
async def invite_team_member(
    body: InviteRequest,
    principal: PrincipalDep,
    repo: TeamRepoDep,
    codec: TokenCodecDep,
    settings: SettingsDep,
) -> dict:
    """Create a pending invitation and return its join link. No email is sent."""
    if body.team_member_id is not None:
        member = found(await repo.get(body.team_member_id), "Team member")
        require_mutate(principal, member.organisation_id, "team member")
    else:
        tenant = target_tenant(principal, None)
        email = normalise_email(body.email)
        member = await repo.get_by_email(tenant, email)
        if member is None:
            member = await repo.create(tenant, team_member_name=body.team_member_name, team_member_email_id=email)
    if member.user_id is not None:
        raise ValidationFailed("Team member already has an account")

    claims = InvitationClaims(
        team_member_id=member.id,
        organisation_id=member.organisation_id,
        email=member.team_member_email_id,
        role=Role(body.role),
    )
    token = codec.issue_invitation(claims, ttl_seconds=settings.invitation_ttl_seconds)
    invitation = await repo.create_invitation(
        email=claims.email,
        token=token,
        team_member_id=member.id,
        organisation_id=member.organisation_id,
        invited_by=principal.user_id,
        role=claims.role.value,
        expires_at=datetime.now(UTC) + timedelta(seconds=settings.invitation_ttl_seconds),
    )
    logger.info("invitation_created", team_member_id=member.id, organisation_id=member.organisation_id)
    return {
        "invitation": InvitationOut.model_validate(invitation),
        "joinUrl": f"{settings.frontend_url.rstrip('/')}/join?token={token}",
    }


@router.get("/{team_member_id}")
async def get_team_member(team_member_id: int, principal: PrincipalDep, repo: TeamRepoDep) -> dict:
    member = found(await repo.get(team_member_id), "Team member")
    require_view(principal, member.organisation_id, "team member")
    return {"teamMember": TeamMemberOut.model_validate(member)}


@router.put("/{team_member_id}")
async def update_team_member(
    team_member_id: int, body: TeamMemberUpdate, principal: PrincipalDep, repo: TeamRepoDep
) -> dict:
    member = found(await repo.get(team_member_id), "Team member")
    require_mutate(principal, member.organisation_id, "team member")
    data = changes(body, "team_member_name", "team_member_email_id")
    if "team_member_email_id" in data:
        email = normalise_email(data["team_member_email_id"])
        existing = await repo.get_by_email(member.organisation_id, email)
        if existing is not None and existing.id != member.id:
            raise ValidationFailed("A team member with this email already exists")
        data["team_member_email_id"] = email
    member = await repo.update(member, **data)
    return {"teamMember": TeamMemberOut.model_validate(member)}


@router.delete("/{team_member_id}", status_code=204)
async def delete_team_member(team_member_id: int, principal: PrincipalDep, repo: TeamRepoDep) -> Response:
    member = found(await repo.get(team_member_id), "Team member")
    require_mutate(principal, member.organisation_id, "team member")
    require_no_dependents(
        await repo.dependent_counts(member.id),
        "Cannot delete team member with assigned deals or tasks",
    )
    await repo.delete(member)
    return Response(status_code=204)
