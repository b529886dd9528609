"""Auth service tests against an in-memory store."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from crmdash.auth.jwt import TokenCodec
from crmdash.auth.models import Claims, InvitationClaims, Principal, Role
from crmdash.auth.passwords import hash_password, is_hashed, verify_password
from crmdash.auth.service import (
    ONBOARDING_STEP,
    AuthFailure,
    AuthFailureReason,
    AuthService,
    AuthSuccess,
)
from crmdash.errors import DuplicateRecord
from helpers import FakeAuthStore

SECRET = "service-test-secret-with-at-least-32-bytes"


@pytest.fixture
def store() -> FakeAuthStore:
    return FakeAuthStore()


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(SECRET)


@pytest.fixture
def service(store, codec) -> AuthService:
    return AuthService(store, codec, bcrypt_rounds=4)


async def _seed_user(store, email="alice@example.com", password="password123", role="admin", organisation_id=None):
    return await store.create_user(email, hash_password(password, rounds=4), role, organisation_id)


def _principal_for(codec: TokenCodec, token: str) -> Principal:
    principal = codec.verify(token)
    assert principal is not None
    return principal


# ---------------------------------------------------------------------------
# login
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_login_success_issues_token(service, store, codec):
    org = await store.create_organisation("Acme")
    user = await _seed_user(store, organisation_id=org.id)

    result = await service.login("Alice@Example.com ", "password123")

    assert isinstance(result, AuthSuccess)
    assert result.user.id == user.id
    assert result.user.organisation_name == "Acme"
    assert not result.setup_required
    principal = _principal_for(codec, result.token)
    assert principal.organisation_id == org.id
    assert principal.role is Role.ADMIN


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(service, store):
    await _seed_user(store)

    wrong_password = await service.login("alice@example.com", "not-the-password")
    unknown_email = await service.login("nobody@example.com", "password123")

    assert isinstance(wrong_password, AuthFailure)
    assert wrong_password == unknown_email
    assert wrong_password.reason is AuthFailureReason.INVALID_CREDENTIALS


@pytest.mark.asyncio
async def test_login_unknown_email_still_runs_bcrypt(service, monkeypatch):
    checked: list[str] = []

    def spy(password, hashed):
        checked.append(hashed)
        return verify_password(password, hashed)

    monkeypatch.setattr("crmdash.auth.service.verify_password", spy)

    result = await service.login("nobody@example.com", "password123")

    assert isinstance(result, AuthFailure)
    assert result.reason is AuthFailureReason.INVALID_CREDENTIALS
    assert len(checked) == 1
    assert is_hashed(checked[0])
    assert checked[0].startswith("$2b$04$")


@pytest.mark.asyncio
async def test_login_without_tenant_requires_setup(service, store):
    await _seed_user(store)
    result = await service.login("alice@example.com", "password123")
    assert isinstance(result, AuthSuccess)
    assert result.setup_required
    assert result.next_step == ONBOARDING_STEP


# ---------------------------------------------------------------------------
# register
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_register_without_organisation(service, store, codec):
    result = await service.register(" New@Example.com", "password123")

    assert isinstance(result, AuthSuccess)
    assert result.user.email == "new@example.com"
    assert result.user.role == "admin"
    assert result.user.organisation_id is None
    assert result.setup_required
    assert _principal_for(codec, result.token).organisation_id is None
    assert store.commits == 1


@pytest.mark.asyncio
async def test_register_duplicate_email_ignores_case(service, store):
    await _seed_user(store)
    result = await service.register("ALICE@example.com", "password123")
    assert isinstance(result, AuthFailure)
    assert result.reason is AuthFailureReason.EMAIL_TAKEN


class _ConflictingStore(FakeAuthStore):
    """Storage that loses the race: lookups miss but the insert hits a unique constraint."""

    async def create_user(self, email, password_hash, role, organisation_id=None):
        raise DuplicateRecord("Email already exists")

    async def create_organisation(self, name):
        raise DuplicateRecord("An organization with this name already exists")


@pytest.mark.asyncio
async def test_register_concurrent_duplicate_is_email_taken(codec):
    service = AuthService(_ConflictingStore(), codec, bcrypt_rounds=4)
    result = await service.register("alice@example.com", "password123")
    assert isinstance(result, AuthFailure)
    assert result.reason is AuthFailureReason.EMAIL_TAKEN


@pytest.mark.asyncio
async def test_create_organisation_concurrent_duplicate_is_name_taken(codec):
    store = _ConflictingStore()
    user = store.add_user("alice@example.com", hash_password("password123", rounds=4))
    service = AuthService(store, codec, bcrypt_rounds=4)
    principal = _principal_for(codec, codec.issue(Claims(user_id=user.id, email=user.email, role=Role.ADMIN)))

    result = await service.create_organisation(principal, "Acme")

    assert isinstance(result, AuthFailure)
    assert result.reason is AuthFailureReason.ORGANISATION_NAME_TAKEN
    assert store.commits == 0


@pytest.mark.asyncio
async def test_register_into_existing_organisation_is_member(service, store):
    org = await store.create_organisation("Acme")
    result = await service.register("bob@example.com", "password123", organisation_id=org.id)
    assert isinstance(result, AuthSuccess)
    assert result.user.role == "member"
    assert result.user.organisation_id == org.id


@pytest.mark.asyncio
async def test_register_unknown_organisation(service):
    result = await service.register("bob@example.com", "password123", organisation_id=404)
    assert isinstance(result, AuthFailure)
    assert result.reason is AuthFailureReason.UNKNOWN_ORGANISATION


# ---------------------------------------------------------------------------
# create_organisation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_organisation_reissues_token_with_tenant(service, store, codec):
    registered = await service.register("alice@example.com", "password123")
    old_principal = _principal_for(codec, registered.token)

    created = await service.create_organisation(old_principal, "Acme Realty")

    assert created.session is not None
    new_principal = _principal_for(codec, created.session.token)
    assert new_principal.organisation_id == created.organisation_id
    assert new_principal.role is Role.ADMIN
    # The old token still verifies but carries no tenant.
    assert _principal_for(codec, registered.token).organisation_id is None


@pytest.mark.asyncio
async def test_create_organisation_when_already_in_one(service, store, codec):
    org = await store.create_organisation("Acme")
    user = await _seed_user(store, organisation_id=org.id)
    principal = _principal_for(
        codec, codec.issue(Claims(user_id=user.id, email=user.email, role=Role.ADMIN, organisation_id=org.id))
    )
    result = await service.create_organisation(principal, "Second")
    assert isinstance(result, AuthFailure)
    assert result.reason is AuthFailureReason.ALREADY_IN_ORGANISATION


@pytest.mark.asyncio
async def test_create_organisation_name_taken(service, store, codec):
    await store.create_organisation("Acme")
    registered = await service.register("alice@example.com", "password123")
    result = await service.create_organisation(_principal_for(codec, registered.token), "Acme")
    assert isinstance(result, AuthFailure)
    assert result.reason is AuthFailureReason.ORGANISATION_NAME_TAKEN


# ---------------------------------------------------------------------------
# join
# ---------------------------------------------------------------------------


def _invite(store, codec, email="carol@example.com", expires_in=timedelta(days=1)):
    org_id = 500
    store.orgs[org_id] = MagicMock(id=org_id, organisation_name="Acme")
    member = store.add_team_member(org_id, email)
    token = codec.issue_invitation(InvitationClaims(team_member_id=member.id, organisation_id=org_id, email=email))
    invitation = store.add_invitation(token, datetime.now(UTC) + expires_in)
    return token, member, invitation


@pytest.mark.asyncio
async def test_join_creates_user_and_links_team_member(service, store, codec):
    token, member, invitation = _invite(store, codec)

    result = await service.join(token, "password123")

    assert isinstance(result, AuthSuccess)
    assert result.user.role == "member"
    assert result.user.organisation_id == 500
    assert result.user.team_member_id == member.id
    assert member.user_id == result.user.id
    assert invitation.status == "accepted"
    assert _principal_for(codec, result.token).team_member_id == member.id


@pytest.mark.asyncio
async def test_join_twice_fails(service, store, codec):
    token, _, _ = _invite(store, codec)
    await service.join(token, "password123")
    result = await service.join(token, "password123")
    assert isinstance(result, AuthFailure)
    assert result.reason is AuthFailureReason.INVALID_INVITATION


@pytest.mark.asyncio
async def test_join_expired_invitation(service, store, codec):
    token, _, _ = _invite(store, codec, expires_in=timedelta(seconds=-1))
    result = await service.join(token, "password123")
    assert isinstance(result, AuthFailure)
    assert result.reason is AuthFailureReason.INVALID_INVITATION


@pytest.mark.asyncio
async def test_join_rejects_session_token(service, codec):
    session_token = codec.issue(Claims(user_id=1, email="a@example.com", role=Role.ADMIN))
    result = await service.join(session_token, "password123")
    assert isinstance(result, AuthFailure)
    assert result.reason is AuthFailureReason.INVALID_INVITATION


@pytest.mark.asyncio
async def test_join_email_registered_elsewhere(service, store, codec):
    await _seed_user(store, email="carol@example.com", organisation_id=77)
    token, _, _ = _invite(store, codec)
    result = await service.join(token, "password123")
    assert isinstance(result, AuthFailure)
    assert result.reason is AuthFailureReason.EMAIL_IN_OTHER_ORGANISATION
