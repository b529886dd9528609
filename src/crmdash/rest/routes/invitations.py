"""Public invitation lookup used by the join page."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter

from crmdash.auth.deps import TokenCodecDep
from crmdash.db.deps import OrganisationsRepoDep, TeamRepoDep
from crmdash.errors import NotFound

router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.get("/{token}")
async def verify_invitation(
    token: str, codec: TokenCodecDep, team: TeamRepoDep, organisations: OrganisationsRepoDep
) -> dict:
    claims = codec.verify_invitation(token)
    invitation = await team.get_invitation_by_token(token) if claims is not None else None
    if invitation is None or invitation.status != "pending":
        raise NotFound("Invitation not found or has expired")
    expires_at = invitation.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    if expires_at <= datetime.now(UTC):
        raise NotFound("Invitation not found or has expired")

    org = await organisations.get(invitation.organisation_id)
    member = await team.get(invitation.team_member_id)
    return {
        "valid": True,
        "invitation": {
            "email": invitation.email,
            "role": invitation.role,
            "organisation_id": invitation.organisation_id,
            "organisation_name": org.organisation_name if org is not None else None,
            "team_member_name": member.team_member_name if member is not None else None,
            "expires_at": expires_at.isoformat(),
        },
    }
