"""Organisation endpoints, including the onboarding create step."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from crmdash.auth.deps import AuthServiceDep, PrincipalDep, SettingsDep
from crmdash.auth.policy import scope_filter
from crmdash.auth.service import AuthFailure
from crmdash.db.deps import OrganisationsRepoDep
from crmdash.errors import ValidationFailed
from crmdash.rest.cookies import set_session_cookie
from crmdash.rest.guards import found, require_mutate, require_view
from crmdash.rest.schemas import OrganisationCreate, OrganisationOut, OrganisationUpdate, UserOut

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.get("")
async def list_organizations(principal: PrincipalDep, repo: OrganisationsRepoDep) -> dict:
    """Superadmins see every organisation; everyone else sees their own."""
    rows = await repo.list(scope_filter(principal))
    return {"organizations": [OrganisationOut.model_validate(r) for r in rows]}


@router.post("", status_code=201)
async def create_organization(
    body: OrganisationCreate,
    principal: PrincipalDep,
    service: AuthServiceDep,
    settings: SettingsDep,
) -> JSONResponse:
    result = await service.create_organisation(principal, body.organisation_name)
    if isinstance(result, AuthFailure):
        raise ValidationFailed(result.message)

    content: dict = {
        "organization": {"id": result.organisation_id, "organisation_name": result.organisation_name},
    }
    if result.session is not None:
        content["user"] = UserOut.model_validate(result.session.user).model_dump()
        content["token"] = result.session.token
        content["redirectTo"] = "/dashboard"
    response = JSONResponse(status_code=201, content=content)
    if result.session is not None:
        set_session_cookie(response, result.session.token, settings)
    return response


@router.get("/{organisation_id}")
async def get_organization(organisation_id: int, principal: PrincipalDep, repo: OrganisationsRepoDep) -> dict:
    org = found(await repo.get(organisation_id), "Organization")
    require_view(principal, org.id, "organization")
    return {"organization": OrganisationOut.model_validate(org)}


@router.put("/{organisation_id}")
async def update_organization(
    organisation_id: int,
    body: OrganisationUpdate,
    principal: PrincipalDep,
    repo: OrganisationsRepoDep,
) -> dict:
    org = found(await repo.get(organisation_id), "Organization")
    require_mutate(principal, org.id, "organization")
    existing = await repo.get_by_name(body.organisation_name)
    if existing is not None and existing.id != org.id:
        raise ValidationFailed("An organization with this name already exists")
    org = await repo.rename(org, body.organisation_name)
    return {"organization": OrganisationOut.model_validate(org)}
