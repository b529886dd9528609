"""Repository for identity, organisation and invitation rows used by the auth flows."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crmdash.db.engine import persist
from crmdash.db.models import InvitationModel, OrganisationModel, TeamMemberModel, UserModel


class AuthRepo:
    """Writes only flush; the caller decides when to ``commit()``.

    Unique-constraint violations surface as ``DuplicateRecord``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def commit(self) -> None:
        await persist(self._session, "Record already exists")

    # Users

    async def get_user(self, user_id: int) -> UserModel | None:
        return await self._session.get(UserModel, user_id)

    async def get_user_by_email(self, email: str) -> UserModel | None:
        result = await self._session.execute(select(UserModel).where(UserModel.email == email))
        return result.scalars().first()

    async def create_user(
        self,
        email: str,
        password_hash: str,
        role: str,
        organisation_id: int | None = None,
    ) -> UserModel:
        user = UserModel(
            email=email,
            password_hash=password_hash,
            role=role,
            organisation_id=organisation_id,
        )
        self._session.add(user)
        await persist(self._session, "Email already exists", commit=False)
        await self._session.refresh(user)
        return user

    async def attach_user_to_organisation(
        self, user: UserModel, organisation_id: int, role: str | None = None
    ) -> UserModel:
        user.organisation_id = organisation_id
        if role is not None:
            user.role = role
        await self._session.flush()
        return user

    # Organisations

    async def get_organisation(self, organisation_id: int) -> OrganisationModel | None:
        return await self._session.get(OrganisationModel, organisation_id)

    async def get_organisation_by_name(self, name: str) -> OrganisationModel | None:
        result = await self._session.execute(
            select(OrganisationModel).where(OrganisationModel.organisation_name == name)
        )
        return result.scalars().first()

    async def create_organisation(self, name: str) -> OrganisationModel:
        org = OrganisationModel(organisation_name=name)
        self._session.add(org)
        await persist(self._session, "An organization with this name already exists", commit=False)
        await self._session.refresh(org)
        return org

    # Team members / invitations

    async def get_team_member(self, team_member_id: int) -> TeamMemberModel | None:
        return await self._session.get(TeamMemberModel, team_member_id)

    async def get_team_member_for_user(self, user_id: int) -> TeamMemberModel | None:
        result = await self._session.execute(
            select(TeamMemberModel).where(TeamMemberModel.user_id == user_id)
        )
        return result.scalars().first()

    async def link_team_member(self, team_member: TeamMemberModel, user_id: int) -> None:
        team_member.user_id = user_id
        await persist(self._session, "Account is already linked to a team member", commit=False)

    async def get_pending_invitation(self, token: str) -> InvitationModel | None:
        result = await self._session.execute(
            select(InvitationModel).where(
                InvitationModel.token == token,
                InvitationModel.status == "pending",
            )
        )
        return result.scalars().first()

    async def accept_invitation(self, invitation: InvitationModel, accepted_at: datetime) -> None:
        invitation.status = "accepted"
        invitation.accepted_at = accepted_at
        await self._session.flush()
