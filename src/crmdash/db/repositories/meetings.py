"""Repository for meetings and meeting notes."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from crmdash.db.models import DealModel, MeetingModel, MeetingNoteModel, PropertyModel


class MeetingsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_deal(self, deal_id: int) -> list[MeetingModel]:
        result = await self._session.execute(
            select(MeetingModel).where(MeetingModel.deal_id == deal_id).order_by(MeetingModel.scheduled_at)
        )
        return list(result.scalars().all())

    async def get_with_tenant(self, meeting_id: int) -> tuple[MeetingModel, int] | None:
        result = await self._session.execute(
            select(MeetingModel, PropertyModel.organisation_id)
            .join(DealModel, DealModel.id == MeetingModel.deal_id)
            .join(PropertyModel, PropertyModel.id == DealModel.property_id)
            .where(MeetingModel.id == meeting_id)
        )
        row = result.first()
        if row is None:
            return None
        return row[0], row[1]

    async def create(self, **fields: Any) -> MeetingModel:
        meeting = MeetingModel(**fields)
        self._session.add(meeting)
        await self._session.commit()
        await self._session.refresh(meeting)
        return meeting

    async def delete(self, meeting: MeetingModel) -> None:
        """Delete a meeting together with its notes."""
        await self._session.execute(delete(MeetingNoteModel).where(MeetingNoteModel.meeting_id == meeting.id))
        await self._session.delete(meeting)
        await self._session.commit()

    async def list_notes(self, meeting_id: int) -> list[MeetingNoteModel]:
        result = await self._session.execute(
            select(MeetingNoteModel)
            .where(MeetingNoteModel.meeting_id == meeting_id)
            .order_by(MeetingNoteModel.timestamp, MeetingNoteModel.id)
        )
        return list(result.scalars().all())

    async def add_note(self, meeting_id: int, content: str, team_member_id: int | None = None) -> MeetingNoteModel:
        note = MeetingNoteModel(meeting_id=meeting_id, content=content, team_member_id=team_member_id)
        self._session.add(note)
        await self._session.commit()
        await self._session.refresh(note)
        return note
