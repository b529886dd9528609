"""Repository for tasks. A task's tenant is that of its deal's property."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crmdash.auth.policy import TenantFilter
from crmdash.db.models import DealModel, PropertyModel, TaskModel


class TasksRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list(
        self,
        tenant: TenantFilter,
        status: str | None = None,
        assigned_to: int | None = None,
        deal_id: int | None = None,
    ) -> list[TaskModel]:
        query = (
            select(TaskModel)
            .join(DealModel, DealModel.id == TaskModel.deal_id)
            .join(PropertyModel, PropertyModel.id == DealModel.property_id)
        )
        query = tenant.apply(query, PropertyModel.organisation_id)
        if status:
            query = query.where(TaskModel.status == status)
        if assigned_to is not None:
            query = query.where(TaskModel.assigned_to == assigned_to)
        if deal_id is not None:
            query = query.where(TaskModel.deal_id == deal_id)
        result = await self._session.execute(query.order_by(TaskModel.due_date, TaskModel.id))
        return list(result.scalars().all())

    async def get_with_tenant(self, task_id: int) -> tuple[TaskModel, int] | None:
        result = await self._session.execute(
            select(TaskModel, PropertyModel.organisation_id)
            .join(DealModel, DealModel.id == TaskModel.deal_id)
            .join(PropertyModel, PropertyModel.id == DealModel.property_id)
            .where(TaskModel.id == task_id)
        )
        row = result.first()
        if row is None:
            return None
        return row[0], row[1]

    async def create(self, **fields: Any) -> TaskModel:
        task = TaskModel(**fields)
        self._session.add(task)
        await self._session.commit()
        await self._session.refresh(task)
        return task

    async def update(self, task: TaskModel, **fields: Any) -> TaskModel:
        for key, value in fields.items():
            setattr(task, key, value)
        await self._session.commit()
        await self._session.refresh(task)
        return task

    async def delete(self, task: TaskModel) -> None:
        await self._session.delete(task)
        await self._session.commit()
