"""Repository for contacts."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from crmdash.auth.policy import TenantFilter
from crmdash.db.models import ContactModel, PropertyModel


class ContactsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list(self, tenant: TenantFilter, q: str | None = None) -> list[ContactModel]:
        query = tenant.apply(select(ContactModel), ContactModel.organisation_id)
        if q:
            pattern = f"%{q.lower()}%"
            query = query.where(
                or_(
                    func.lower(ContactModel.name).like(pattern),
                    func.lower(ContactModel.email).like(pattern),
                )
            )
        result = await self._session.execute(query.order_by(ContactModel.name))
        return list(result.scalars().all())

    async def get(self, contact_id: int) -> ContactModel | None:
        return await self._session.get(ContactModel, contact_id)

    async def create(self, organisation_id: int, **fields: Any) -> ContactModel:
        contact = ContactModel(organisation_id=organisation_id, **fields)
        self._session.add(contact)
        await self._session.commit()
        await self._session.refresh(contact)
        return contact

    async def update(self, contact: ContactModel, **fields: Any) -> ContactModel:
        for key, value in fields.items():
            setattr(contact, key, value)
        await self._session.commit()
        await self._session.refresh(contact)
        return contact

    async def delete(self, contact: ContactModel) -> None:
        await self._session.delete(contact)
        await self._session.commit()

    async def list_properties(self, contact_id: int) -> list[PropertyModel]:
        result = await self._session.execute(
            select(PropertyModel).where(PropertyModel.owner_id == contact_id).order_by(PropertyModel.id)
        )
        return list(result.scalars().all())

    async def count_properties(self, contact_id: int) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(PropertyModel).where(PropertyModel.owner_id == contact_id)
        )
        return result.scalar_one()
