"""Request gate: the edge check that runs before every route handler.

``decide`` is a pure function of the route classification, whether a token
was presented, and the principal it verified to. The middleware only gathers
those inputs and turns the decision into a response.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from crmdash.auth.jwt import TokenCodec
from crmdash.auth.models import Principal

logger = structlog.get_logger(__name__)

LOGIN_PATH = "/login"
ONBOARDING_PATH = "/onboarding/create-organization"
DEFAULT_COOKIE_NAME = "token"


class RouteClass(str, Enum):
    PUBLIC = "public"
    SETUP = "setup"
    PROTECTED = "protected"


PUBLIC_PATHS = frozenset(
    {
        "/",
        "/login",
        "/register",
        "/join",
        "/health",
        "/health/ready",
        "/docs",
        "/redoc",
        "/openapi.json",
        "/api/health",
        "/api/auth/login",
        "/api/auth/register",
        "/api/auth/logout",
        "/api/auth/me",
        "/api/auth/test",
        "/api/auth/join",
    }
)
PUBLIC_PREFIXES = ("/api/invitations/", "/static/")
SETUP_PATHS = frozenset({"/api/organizations", "/api/team"})
SETUP_PREFIXES = ("/onboarding/",)


def classify(path: str) -> RouteClass:
    if len(path) > 1:
        path = path.rstrip("/")
    if path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES):
        return RouteClass.PUBLIC
    if path in SETUP_PATHS or path == "/onboarding" or path.startswith(SETUP_PREFIXES):
        return RouteClass.SETUP
    return RouteClass.PROTECTED


def is_api_path(path: str) -> bool:
    return path == "/api" or path.startswith("/api/")


def extract_token(
    cookies: Mapping[str, str],
    headers: Mapping[str, str],
    cookie_name: str = DEFAULT_COOKIE_NAME,
) -> str | None:
    """Cookie first, ``Authorization: Bearer`` as the fallback."""
    token = cookies.get(cookie_name)
    if token:
        return token
    auth_header = headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.removeprefix("Bearer ").strip() or None
    return None


class GateAction(str, Enum):
    ALLOW = "allow"
    UNAUTHORIZED = "unauthorized"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_ONBOARDING = "redirect_onboarding"


@dataclass(frozen=True)
class GateDecision:
    action: GateAction
    reason: str = ""

    @property
    def location(self) -> str | None:
        if self.action is GateAction.REDIRECT_LOGIN:
            return LOGIN_PATH
        if self.action is GateAction.REDIRECT_ONBOARDING:
            return ONBOARDING_PATH
        return None


def decide(
    route_class: RouteClass,
    *,
    is_api: bool,
    token_present: bool,
    principal: Principal | None,
) -> GateDecision:
    if route_class is RouteClass.PUBLIC:
        return GateDecision(GateAction.ALLOW, "public")

    if not token_present or principal is None:
        reason = "missing_token" if not token_present else "invalid_token"
        action = GateAction.UNAUTHORIZED if is_api else GateAction.REDIRECT_LOGIN
        return GateDecision(action, reason)

    if route_class is RouteClass.SETUP:
        return GateDecision(GateAction.ALLOW, "setup")

    if not principal.has_tenant:
        # API calls made during onboarding must still work.
        if is_api:
            return GateDecision(GateAction.ALLOW, "onboarding_api")
        return GateDecision(GateAction.REDIRECT_ONBOARDING, "onboarding_required")

    return GateDecision(GateAction.ALLOW, "authenticated")


class RequestGateMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, codec: TokenCodec, cookie_name: str = DEFAULT_COOKIE_NAME) -> None:
        super().__init__(app)
        self._codec = codec
        self._cookie_name = cookie_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        route_class = classify(path)
        if route_class is RouteClass.PUBLIC:
            return await call_next(request)

        is_api = is_api_path(path)
        token = extract_token(request.cookies, request.headers, self._cookie_name)
        principal = self._codec.verify(token) if token else None
        decision = decide(route_class, is_api=is_api, token_present=token is not None, principal=principal)

        if decision.action is GateAction.ALLOW:
            request.state.principal = principal
            return await call_next(request)

        logger.info("gate_denied", path=path, action=decision.action.value, reason=decision.reason)
        if decision.action is GateAction.UNAUTHORIZED:
            message = "Authentication required" if decision.reason == "missing_token" else "Invalid token"
            return JSONResponse(status_code=401, content={"error": message})

        response = RedirectResponse(url=decision.location, status_code=307)
        if decision.reason == "invalid_token":
            response.delete_cookie(self._cookie_name, path="/")
        return response
