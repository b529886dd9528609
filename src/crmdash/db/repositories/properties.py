"""Repository for properties."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crmdash.auth.policy import TenantFilter
from crmdash.db.models import DealModel, DocumentModel, PropertyModel


class PropertiesRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list(self, tenant: TenantFilter, status: str | None = None) -> list[PropertyModel]:
        query = tenant.apply(select(PropertyModel), PropertyModel.organisation_id)
        if status:
            query = query.where(PropertyModel.status == status)
        result = await self._session.execute(query.order_by(PropertyModel.created_at.desc(), PropertyModel.id.desc()))
        return list(result.scalars().all())

    async def get(self, property_id: int) -> PropertyModel | None:
        return await self._session.get(PropertyModel, property_id)

    async def create(self, organisation_id: int, **fields: Any) -> PropertyModel:
        prop = PropertyModel(organisation_id=organisation_id, **fields)
        self._session.add(prop)
        await self._session.commit()
        await self._session.refresh(prop)
        return prop

    async def update(self, prop: PropertyModel, **fields: Any) -> PropertyModel:
        for key, value in fields.items():
            setattr(prop, key, value)
        await self._session.commit()
        await self._session.refresh(prop)
        return prop

    async def delete(self, prop: PropertyModel) -> None:
        await self._session.delete(prop)
        await self._session.commit()

    async def dependent_counts(self, property_id: int) -> dict[str, int]:
        deals = await self._session.execute(
            select(func.count()).select_from(DealModel).where(DealModel.property_id == property_id)
        )
        documents = await self._session.execute(
            select(func.count()).select_from(DocumentModel).where(DocumentModel.property_id == property_id)
        )
        return {"dealCount": deals.scalar_one(), "documentCount": documents.scalar_one()}
