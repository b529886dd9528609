"""Auth endpoints: login, register, logout, join, /me and /test."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from crmdash.auth.deps import AuthServiceDep, OptionalPrincipalDep, SettingsDep
from crmdash.auth.service import AuthFailure, AuthFailureReason, AuthSuccess
from crmdash.errors import InvalidCredentials, UnsupportedMediaType, ValidationFailed
from crmdash.rest.cookies import clear_session_cookie, set_session_cookie
from crmdash.rest.schemas import JoinRequest, LoginRequest, RegisterRequest, UserOut

router = APIRouter(prefix="/auth", tags=["auth"])

DASHBOARD_PATH = "/dashboard"


async def _read_login_body(request: Request) -> LoginRequest:
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type == "application/json":
        try:
            data: Any = await request.json()
        except ValueError as exc:
            raise ValidationFailed("Malformed JSON body") from exc
    elif content_type in ("application/x-www-form-urlencoded", "multipart/form-data"):
        form = await request.form()
        data = {key: value for key, value in form.items() if isinstance(value, str)}
    else:
        raise UnsupportedMediaType()

    if not isinstance(data, dict):
        raise ValidationFailed("Email and password are required")
    try:
        return LoginRequest.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailed("Email and password are required") from exc


def _session_body(result: AuthSuccess) -> dict[str, Any]:
    return {
        "user": UserOut.model_validate(result.user).model_dump(),
        "token": result.token,
        "setupRequired": result.setup_required,
        "nextStep": result.next_step,
    }


def _raise_for(failure: AuthFailure) -> None:
    if failure.reason is AuthFailureReason.INVALID_CREDENTIALS:
        raise InvalidCredentials(failure.message)
    raise ValidationFailed(failure.message)


@router.post("/login")
async def login(request: Request, service: AuthServiceDep, settings: SettingsDep) -> JSONResponse:
    """Verify credentials, set the session cookie and return the token."""
    body = await _read_login_body(request)
    result = await service.login(body.email, body.password)
    if isinstance(result, AuthFailure):
        raise InvalidCredentials(result.message)

    response = JSONResponse(
        content={"success": True, **_session_body(result), "redirectTo": DASHBOARD_PATH}
    )
    set_session_cookie(response, result.token, settings)
    return response


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, service: AuthServiceDep, settings: SettingsDep) -> JSONResponse:
    """Create a user; without an organisation the client continues to onboarding."""
    result = await service.register(body.email, body.password, body.organisation_id)
    if isinstance(result, AuthFailure):
        _raise_for(result)

    response = JSONResponse(status_code=201, content=_session_body(result))
    set_session_cookie(response, result.token, settings)
    return response


@router.post("/join")
async def join(body: JoinRequest, service: AuthServiceDep, settings: SettingsDep) -> JSONResponse:
    """Accept a team invitation and sign the user in."""
    result = await service.join(body.token, body.password)
    if isinstance(result, AuthFailure):
        _raise_for(result)

    response = JSONResponse(content={"success": True, **_session_body(result), "redirectTo": DASHBOARD_PATH})
    set_session_cookie(response, result.token, settings)
    return response


@router.post("/logout")
async def logout(settings: SettingsDep) -> JSONResponse:
    response = JSONResponse(content={"success": True})
    clear_session_cookie(response, settings)
    return response


def _principal_user(principal) -> dict[str, Any]:
    return {
        "id": principal.user_id,
        "email": principal.email,
        "role": principal.role.value,
        "organisation_id": principal.organisation_id,
        "team_member_id": principal.team_member_id,
    }


@router.get("/me")
async def me(principal: OptionalPrincipalDep) -> JSONResponse:
    """Identity as carried by the token; no store lookup."""
    if principal is None:
        return JSONResponse(status_code=401, content={"authenticated": False, "error": "Not authenticated"})
    return JSONResponse(content={"authenticated": True, "user": _principal_user(principal)})


@router.get("/test")
async def token_test(request: Request, principal: OptionalPrincipalDep, settings: SettingsDep) -> JSONResponse:
    """Diagnostic view of the presented token."""
    if principal is None:
        return JSONResponse(status_code=401, content={"authenticated": False, "error": "Not authenticated"})
    source = "cookie" if request.cookies.get(settings.cookie_name) else "header"
    return JSONResponse(
        content={
            "authenticated": True,
            "user": _principal_user(principal),
            "tokenSource": source,
            "tokenExpiry": principal.expires_at_datetime.isoformat(),
        }
    )

