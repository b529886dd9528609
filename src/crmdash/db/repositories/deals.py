"""Repository for deals and their discussion notes.

Deals carry no ``organisation_id`` of their own; the tenant is that of the
property the deal is on, so every lookup here joins through ``properties``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crmdash.auth.policy import TenantFilter
from crmdash.db.models import (
    DealModel,
    DocumentModel,
    MeetingModel,
    NoteModel,
    PropertyModel,
    TaskModel,
)


class DealsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list(
        self,
        tenant: TenantFilter,
        status: str | None = None,
        assigned_to: int | None = None,
        property_id: int | None = None,
    ) -> list[DealModel]:
        query = select(DealModel).join(PropertyModel, PropertyModel.id == DealModel.property_id)
        query = tenant.apply(query, PropertyModel.organisation_id)
        if status:
            query = query.where(DealModel.status == status)
        if assigned_to is not None:
            query = query.where(DealModel.assigned_to == assigned_to)
        if property_id is not None:
            query = query.where(DealModel.property_id == property_id)
        result = await self._session.execute(query.order_by(DealModel.created_at.desc(), DealModel.id.desc()))
        return list(result.scalars().all())

    async def get_with_tenant(self, deal_id: int) -> tuple[DealModel, int] | None:
        """Return the deal and the organisation that owns it, or None."""
        result = await self._session.execute(
            select(DealModel, PropertyModel.organisation_id)
            .join(PropertyModel, PropertyModel.id == DealModel.property_id)
            .where(DealModel.id == deal_id)
        )
        row = result.first()
        if row is None:
            return None
        return row[0], row[1]

    async def create(self, initial_note: str | None = None, team_member_id: int | None = None, **fields: Any) -> DealModel:
        deal = DealModel(**fields)
        self._session.add(deal)
        await self._session.flush()
        if initial_note:
            self._session.add(NoteModel(deal_id=deal.id, comments=initial_note, team_member_id=team_member_id))
        await self._session.commit()
        await self._session.refresh(deal)
        return deal

    async def update(self, deal: DealModel, **fields: Any) -> DealModel:
        for key, value in fields.items():
            setattr(deal, key, value)
        await self._session.commit()
        await self._session.refresh(deal)
        return deal

    async def delete(self, deal: DealModel) -> None:
        await self._session.delete(deal)
        await self._session.commit()

    async def dependent_counts(self, deal_id: int) -> dict[str, int]:
        counts = {}
        for key, model in (
            ("noteCount", NoteModel),
            ("taskCount", TaskModel),
            ("meetingCount", MeetingModel),
            ("documentCount", DocumentModel),
        ):
            result = await self._session.execute(
                select(func.count()).select_from(model).where(model.deal_id == deal_id)
            )
            counts[key] = result.scalar_one()
        return counts

    # Notes

    async def list_notes(self, deal_id: int) -> list[NoteModel]:
        result = await self._session.execute(
            select(NoteModel).where(NoteModel.deal_id == deal_id).order_by(NoteModel.timestamp.desc(), NoteModel.id.desc())
        )
        return list(result.scalars().all())

    async def add_note(
        self,
        deal_id: int,
        comments: str,
        team_member_id: int | None = None,
        timestamp: datetime | None = None,
    ) -> NoteModel:
        note = NoteModel(deal_id=deal_id, comments=comments, team_member_id=team_member_id)
        if timestamp is not None:
            note.timestamp = timestamp
        self._session.add(note)
        await self._session.commit()
        await self._session.refresh(note)
        return note
