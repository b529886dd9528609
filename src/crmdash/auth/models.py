"""Auth domain models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum


class Role(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


@dataclass(frozen=True)
class Claims:
    """Identity carried inside a session token."""

    user_id: int
    email: str
    role: Role
    organisation_id: int | None = None
    team_member_id: int | None = None


@dataclass(frozen=True)
class Principal:
    """Verified claims for the duration of one request. Never persisted."""

    claims: Claims
    issued_at: int
    expires_at: int  # UNIX epoch seconds

    @property
    def user_id(self) -> int:
        return self.claims.user_id

    @property
    def email(self) -> str:
        return self.claims.email

    @property
    def role(self) -> Role:
        return self.claims.role

    @property
    def organisation_id(self) -> int | None:
        return self.claims.organisation_id

    @property
    def team_member_id(self) -> int | None:
        return self.claims.team_member_id

    @property
    def is_superadmin(self) -> bool:
        return self.claims.role is Role.SUPERADMIN

    @property
    def has_tenant(self) -> bool:
        return self.claims.organisation_id is not None

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at, UTC)

    @property
    def issued_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.issued_at, UTC)


@dataclass(frozen=True)
class InvitationClaims:
    team_member_id: int
    organisation_id: int
    email: str
    role: Role = Role.MEMBER
