"""Repository for team members and the invitations sent to them."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crmdash.auth.policy import TenantFilter
from crmdash.db.engine import persist
from crmdash.db.models import (
    DealModel,
    DocumentModel,
    InvitationModel,
    MeetingModel,
    MeetingNoteModel,
    NoteModel,
    TaskModel,
    TeamMemberModel,
)


class TeamRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list(self, tenant: TenantFilter) -> list[TeamMemberModel]:
        query = tenant.apply(select(TeamMemberModel), TeamMemberModel.organisation_id)
        result = await self._session.execute(query.order_by(TeamMemberModel.team_member_name))
        return list(result.scalars().all())

    async def get(self, team_member_id: int) -> TeamMemberModel | None:
        return await self._session.get(TeamMemberModel, team_member_id)

    async def get_by_email(self, organisation_id: int, email: str) -> TeamMemberModel | None:
        result = await self._session.execute(
            select(TeamMemberModel).where(
                TeamMemberModel.organisation_id == organisation_id,
                func.lower(TeamMemberModel.team_member_email_id) == email.lower(),
            )
        )
        return result.scalars().first()

    async def get_for_user(self, user_id: int) -> TeamMemberModel | None:
        result = await self._session.execute(select(TeamMemberModel).where(TeamMemberModel.user_id == user_id))
        return result.scalars().first()

    async def create(self, organisation_id: int, **fields: Any) -> TeamMemberModel:
        member = TeamMemberModel(organisation_id=organisation_id, **fields)
        self._session.add(member)
        await persist(self._session, "Team member already exists")
        await self._session.refresh(member)
        return member

    async def update(self, member: TeamMemberModel, **fields: Any) -> TeamMemberModel:
        for key, value in fields.items():
            setattr(member, key, value)
        await persist(self._session, "Team member already exists")
        await self._session.refresh(member)
        return member

    async def dependent_counts(self, team_member_id: int) -> dict[str, int]:
        deals = await self._session.execute(
            select(func.count()).select_from(DealModel).where(DealModel.assigned_to == team_member_id)
        )
        tasks = await self._session.execute(
            select(func.count()).select_from(TaskModel).where(TaskModel.assigned_to == team_member_id)
        )
        return {"dealCount": deals.scalar_one(), "taskCount": tasks.scalar_one()}

    async def delete(self, member: TeamMemberModel) -> None:
        """Delete a member with no assigned work.

        Authorship on notes, meetings and documents is detached and the
        member's invitations are removed.
        """
        member_id = member.id
        await self._session.execute(delete(InvitationModel).where(InvitationModel.team_member_id == member_id))
        for model, column in (
            (NoteModel, NoteModel.team_member_id),
            (MeetingModel, MeetingModel.team_member_id),
            (MeetingNoteModel, MeetingNoteModel.team_member_id),
            (DocumentModel, DocumentModel.uploaded_by),
        ):
            await self._session.execute(update(model).where(column == member_id).values({column.key: None}))
        await self._session.delete(member)
        await self._session.commit()

    # Invitations

    async def create_invitation(
        self,
        *,
        email: str,
        token: str,
        team_member_id: int,
        organisation_id: int,
        invited_by: int,
        role: str,
        expires_at: datetime,
    ) -> InvitationModel:
        invitation = InvitationModel(
            email=email,
            token=token,
            team_member_id=team_member_id,
            organisation_id=organisation_id,
            invited_by=invited_by,
            role=role,
            expires_at=expires_at,
        )
        self._session.add(invitation)
        await persist(self._session, "An invitation for this team member was just sent")
        await self._session.refresh(invitation)
        return invitation

    async def get_invitation_by_token(self, token: str) -> InvitationModel | None:
        result = await self._session.execute(select(InvitationModel).where(InvitationModel.token == token))
        return result.scalars().first()
