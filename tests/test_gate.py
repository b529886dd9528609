"""Request gate tests: route table, token extraction and the decision table."""

from __future__ import annotations

import pytest

from crmdash.auth.gate import GateAction, RouteClass, classify, decide, extract_token
from crmdash.auth.models import Claims, Principal, Role


def _principal(role: Role = Role.ADMIN, organisation_id: int | None = 1) -> Principal:
    return Principal(
        claims=Claims(user_id=1, email="a@example.com", role=role, organisation_id=organisation_id),
        issued_at=0,
        expires_at=1,
    )


# ---------------------------------------------------------------------------
# classify
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "path",
    [
        "/",
        "/login",
        "/register",
        "/health",
        "/api/health",
        "/api/auth/login",
        "/api/auth/register",
        "/api/auth/logout",
        "/api/auth/me",
        "/api/auth/test",
        "/api/auth/join",
        "/api/invitations/abc.def.ghi",
    ],
)
def test_public_routes(path):
    assert classify(path) is RouteClass.PUBLIC


@pytest.mark.parametrize(
    "path", ["/onboarding/create-organization", "/api/organizations", "/api/organizations/", "/api/team"]
)
def test_setup_routes(path):
    assert classify(path) is RouteClass.SETUP


@pytest.mark.parametrize(
    "path",
    ["/dashboard", "/api/contacts", "/api/organizations/3", "/api/team/invite", "/api/team/4", "/api/authx"],
)
def test_everything_else_is_protected(path):
    assert classify(path) is RouteClass.PROTECTED


# ---------------------------------------------------------------------------
# extract_token
# ---------------------------------------------------------------------------


def test_cookie_takes_precedence_over_header():
    token = extract_token({"token": "from-cookie"}, {"authorization": "Bearer from-header"})
    assert token == "from-cookie"


def test_bearer_header_fallback():
    assert extract_token({}, {"authorization": "Bearer abc"}) == "abc"


@pytest.mark.parametrize("header", ["", "Basic abc", "Bearer ", "bearer abc"])
def test_no_token(header):
    assert extract_token({}, {"authorization": header}) is None


# ---------------------------------------------------------------------------
# decide
# ---------------------------------------------------------------------------


def test_public_route_always_allowed():
    decision = decide(RouteClass.PUBLIC, is_api=True, token_present=False, principal=None)
    assert decision.action is GateAction.ALLOW


@pytest.mark.parametrize(
    "is_api, expected",
    [(True, GateAction.UNAUTHORIZED), (False, GateAction.REDIRECT_LOGIN)],
)
def test_missing_token(is_api, expected):
    decision = decide(RouteClass.PROTECTED, is_api=is_api, token_present=False, principal=None)
    assert decision.action is expected
    assert decision.reason == "missing_token"


@pytest.mark.parametrize(
    "is_api, expected",
    [(True, GateAction.UNAUTHORIZED), (False, GateAction.REDIRECT_LOGIN)],
)
def test_invalid_token(is_api, expected):
    decision = decide(RouteClass.SETUP, is_api=is_api, token_present=True, principal=None)
    assert decision.action is expected
    assert decision.reason == "invalid_token"


def test_setup_route_allows_tenantless_principal():
    decision = decide(RouteClass.SETUP, is_api=False, token_present=True, principal=_principal(organisation_id=None))
    assert decision.action is GateAction.ALLOW


def test_tenantless_ui_request_goes_to_onboarding():
    decision = decide(
        RouteClass.PROTECTED, is_api=False, token_present=True, principal=_principal(organisation_id=None)
    )
    assert decision.action is GateAction.REDIRECT_ONBOARDING
    assert decision.location == "/onboarding/create-organization"


def test_tenantless_api_request_passes_through():
    decision = decide(
        RouteClass.PROTECTED, is_api=True, token_present=True, principal=_principal(organisation_id=None)
    )
    assert decision.action is GateAction.ALLOW


def test_superadmin_without_tenant_is_sent_to_onboarding():
    decision = decide(
        RouteClass.PROTECTED,
        is_api=False,
        token_present=True,
        principal=_principal(Role.SUPERADMIN, organisation_id=None),
    )
    assert decision.action is GateAction.REDIRECT_ONBOARDING
    assert decision.location == "/onboarding/create-organization"


def test_onboarded_principal_allowed():
    decision = decide(RouteClass.PROTECTED, is_api=False, token_present=True, principal=_principal())
    assert decision.action is GateAction.ALLOW
    assert decision.location is None
