"""Repository for organisations (tenants)."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crmdash.auth.policy import TenantFilter
from crmdash.db.engine import persist
from crmdash.db.models import OrganisationModel


class OrganisationsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list(self, tenant: TenantFilter) -> list[OrganisationModel]:
        query = tenant.apply(select(OrganisationModel), OrganisationModel.id)
        result = await self._session.execute(query.order_by(OrganisationModel.organisation_name))
        return list(result.scalars().all())

    async def get(self, organisation_id: int) -> OrganisationModel | None:
        return await self._session.get(OrganisationModel, organisation_id)

    async def get_by_name(self, name: str) -> OrganisationModel | None:
        result = await self._session.execute(
            select(OrganisationModel).where(OrganisationModel.organisation_name == name)
        )
        return result.scalars().first()

    async def rename(self, organisation: OrganisationModel, name: str) -> OrganisationModel:
        organisation.organisation_name = name
        await persist(self._session, "An organization with this name already exists")
        await self._session.refresh(organisation)
        return organisation
