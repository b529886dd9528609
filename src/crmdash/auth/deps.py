"""FastAPI auth dependencies."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from crmdash.auth.gate import extract_token
from crmdash.auth.jwt import TokenCodec
from crmdash.auth.models import Principal
from crmdash.auth.service import AuthService
from crmdash.db.deps import AuthRepoDep
from crmdash.errors import InvalidToken
from crmdash.settings import Settings


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
TokenCodecDep = Annotated[TokenCodec, Depends(get_token_codec)]


def get_optional_principal(
    request: Request, codec: TokenCodecDep, settings: SettingsDep
) -> Principal | None:
    """Principal set by the request gate, or verified here on public routes."""
    principal = getattr(request.state, "principal", None)
    if principal is not None:
        return principal
    token = extract_token(request.cookies, request.headers, settings.cookie_name)
    return codec.verify(token) if token else None


def get_principal(
    request: Request, codec: TokenCodecDep, settings: SettingsDep
) -> Principal:
    principal = getattr(request.state, "principal", None)
    if principal is not None:
        return principal
    token = extract_token(request.cookies, request.headers, settings.cookie_name)
    if token is None:
        raise InvalidToken("Authentication required")
    principal = codec.verify(token)
    if principal is None:
        raise InvalidToken()
    return principal


OptionalPrincipalDep = Annotated[Principal | None, Depends(get_optional_principal)]
PrincipalDep = Annotated[Principal, Depends(get_principal)]


def get_auth_service(repo: AuthRepoDep, codec: TokenCodecDep, settings: SettingsDep) -> AuthService:
    return AuthService(repo, codec, bcrypt_rounds=settings.bcrypt_rounds)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]

