"""Document metadata endpoints. File bytes live elsewhere; only the URL is stored."""

from __future__ import annotations

from fastapi import APIRouter, Response

from crmdash.auth.deps import PrincipalDep
from crmdash.db.deps import DocumentsRepoDep
from crmdash.errors import ValidationFailed
from crmdash.rest.guards import found, require_mutate, require_view
from crmdash.rest.schemas import DocumentCreate, DocumentOut

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("")
async def list_documents(
    principal: PrincipalDep,
    repo: DocumentsRepoDep,
    deal_id: int | None = None,
    property_id: int | None = None,
) -> dict:
    if deal_id is None and property_id is None:
        raise ValidationFailed("deal_id or property_id is required")
    tenant = await repo.tenant_of_parent(deal_id, property_id)
    if tenant is None:
        raise ValidationFailed("Parent deal or property not found")
    require_view(principal, tenant, "document")
    if deal_id is not None:
        rows = await repo.list_for_deal(deal_id)
    else:
        rows = await repo.list_for_property(property_id)
    return {"documents": [DocumentOut.model_validate(r) for r in rows]}


@router.post("", status_code=201, response_model=DocumentOut)
async def create_document(body: DocumentCreate, principal: PrincipalDep, repo: DocumentsRepoDep) -> DocumentOut:
    tenants = set()
    for deal_id, property_id in ((body.deal_id, None), (None, body.property_id)):
        if deal_id is None and property_id is None:
            continue
        tenant = await repo.tenant_of_parent(deal_id, property_id)
        if tenant is None:
            raise ValidationFailed("Parent deal or property not found")
        require_mutate(principal, tenant, "document")
        tenants.add(tenant)
    if len(tenants) > 1:
        raise ValidationFailed("Deal and property belong to different organizations")

    document = await repo.create(uploaded_by=principal.team_member_id, **body.model_dump())
    return DocumentOut.model_validate(document)


@router.get("/{document_id}")
async def get_document(document_id: int, principal: PrincipalDep, repo: DocumentsRepoDep) -> dict:
    document, tenant = found(await repo.get_with_tenant(document_id), "Document")
    require_view(principal, tenant, "document")
    return {"document": DocumentOut.model_validate(document)}


@router.delete("/{document_id}", status_code=204)
async def delete_document(document_id: int, principal: PrincipalDep, repo: DocumentsRepoDep) -> Response:
    document, tenant = found(await repo.get_with_tenant(document_id), "Document")
    require_mutate(principal, tenant, "document")
    await repo.delete(document)
    return Response(status_code=204)
