"""Request helpers and fakes shared by the tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from crmdash.auth.jwt import TokenCodec
from crmdash.auth.models import Claims, Role

PASSWORD = "password123"


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register(client: TestClient, email: str, password: str = PASSWORD, **extra) -> dict:
    resp = client.post("/api/auth/register", json={"email": email, "password": password, **extra})
    assert resp.status_code == 201, resp.text
    # Tests authenticate with explicit headers; the stored cookie would take precedence.
    client.cookies.clear()
    return resp.json()


def onboard(client: TestClient, email: str, organisation_name: str) -> str:
    """Register a user and create their organisation. Returns the tenant-bearing token."""
    token = register(client, email)["token"]
    resp = client.post(
        "/api/organizations", json={"organisation_name": organisation_name}, headers=bearer(token)
    )
    assert resp.status_code == 201, resp.text
    client.cookies.clear()
    return resp.json()["token"]


def superadmin_token(codec: TokenCodec, user_id: int = 9999) -> str:
    return codec.issue(Claims(user_id=user_id, email="root@example.com", role=Role.SUPERADMIN))


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeAuthStore:
    """In-memory implementation of the AuthStore protocol."""

    def __init__(self):
        self.users: dict[int, Any] = {}
        self.orgs: dict[int, Any] = {}
        self.team_members: dict[int, Any] = {}
        self.invitations: list[Any] = []
        self.commits = 0
        self._ids = iter(range(1, 10_000))

    async def commit(self):
        self.commits += 1

    async def get_user(self, user_id):
        return self.users.get(user_id)

    async def get_user_by_email(self, email):
        return next((u for u in self.users.values() if u.email == email), None)

    async def create_user(self, email, password_hash, role, organisation_id=None):
        user = MagicMock()
        user.id = next(self._ids)
        user.email = email
        user.password_hash = password_hash
        user.role = role
        user.organisation_id = organisation_id
        self.users[user.id] = user
        return user

    async def attach_user_to_organisation(self, user, organisation_id, role=None):
        user.organisation_id = organisation_id
        if role is not None:
            user.role = role
        return user

    async def get_organisation(self, organisation_id):
        return self.orgs.get(organisation_id)

    async def get_organisation_by_name(self, name):
        return next((o for o in self.orgs.values() if o.organisation_name == name), None)

    async def create_organisation(self, name):
        org = MagicMock()
        org.id = next(self._ids)
        org.organisation_name = name
        self.orgs[org.id] = org
        return org

    async def get_team_member(self, team_member_id):
        return self.team_members.get(team_member_id)

    async def get_team_member_for_user(self, user_id):
        return next((m for m in self.team_members.values() if m.user_id == user_id), None)

    async def link_team_member(self, team_member, user_id):
        team_member.user_id = user_id

    async def get_pending_invitation(self, token):
        return next((i for i in self.invitations if i.token == token and i.status == "pending"), None)

    async def accept_invitation(self, invitation, accepted_at):
        invitation.status = "accepted"
        invitation.accepted_at = accepted_at

    # test setup helpers

    def add_team_member(self, organisation_id, email):
        member = MagicMock()
        member.id = next(self._ids)
        member.organisation_id = organisation_id
        member.team_member_email_id = email
        member.user_id = None
        self.team_members[member.id] = member
        return member

    def add_invitation(self, token, expires_at):
        invitation = MagicMock()
        invitation.token = token
        invitation.status = "pending"
        invitation.expires_at = expires_at
        self.invitations.append(invitation)
        return invitation


    def add_organisation(self, name):
        org = MagicMock()
        org.id = next(self._ids)
        org.organisation_name = name
        self.orgs[org.id] = org
        return org

    def add_user(self, email, password_hash, role="admin", organisation_id=None):
        user = MagicMock()
        user.id = next(self._ids)
        user.email = email
        user.password_hash = password_hash
        user.role = role
        user.organisation_id = organisation_id
        self.users[user.id] = user
        return user
