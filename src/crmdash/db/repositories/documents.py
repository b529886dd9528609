"""Repository for document metadata.

A document hangs off a deal or a property; its tenant is resolved through
whichever parent is set, preferring the deal.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crmdash.db.models import DealModel, DocumentModel, PropertyModel


class DocumentsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_deal(self, deal_id: int) -> list[DocumentModel]:
        result = await self._session.execute(
            select(DocumentModel).where(DocumentModel.deal_id == deal_id).order_by(DocumentModel.uploaded_at.desc())
        )
        return list(result.scalars().all())

    async def list_for_property(self, property_id: int) -> list[DocumentModel]:
        result = await self._session.execute(
            select(DocumentModel)
            .where(DocumentModel.property_id == property_id)
            .order_by(DocumentModel.uploaded_at.desc())
        )
        return list(result.scalars().all())

    async def get_with_tenant(self, document_id: int) -> tuple[DocumentModel, int | None] | None:
        document = await self._session.get(DocumentModel, document_id)
        if document is None:
            return None
        return document, await self.tenant_of_parent(document.deal_id, document.property_id)

    async def tenant_of_parent(self, deal_id: int | None, property_id: int | None) -> int | None:
        if deal_id is not None:
            result = await self._session.execute(
                select(PropertyModel.organisation_id)
                .join(DealModel, DealModel.property_id == PropertyModel.id)
                .where(DealModel.id == deal_id)
            )
            return result.scalar_one_or_none()
        if property_id is not None:
            result = await self._session.execute(
                select(PropertyModel.organisation_id).where(PropertyModel.id == property_id)
            )
            return result.scalar_one_or_none()
        return None

    async def create(self, **fields: Any) -> DocumentModel:
        document = DocumentModel(**fields)
        self._session.add(document)
        await self._session.commit()
        await self._session.refresh(document)
        return document

    async def delete(self, document: DocumentModel) -> None:
        await self._session.delete(document)
        await self._session.commit()
