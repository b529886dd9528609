"""Login, registration, onboarding and invitation flows.

Every public coroutine returns either a success record or an ``AuthFailure``;
expected outcomes such as a wrong password are never raised. Only storage
failures propagate as exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from functools import lru_cache
from typing import Protocol

import structlog

from crmdash.auth.jwt import TokenCodec
from crmdash.auth.models import Claims, Principal, Role
from crmdash.auth.passwords import DEFAULT_ROUNDS, hash_password, verify_password
from crmdash.errors import DuplicateRecord

logger = structlog.get_logger(__name__)

ONBOARDING_STEP = "create-organization"


class AuthFailureReason(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_TAKEN = "email_taken"
    UNKNOWN_ORGANISATION = "unknown_organisation"
    ORGANISATION_NAME_TAKEN = "organisation_name_taken"
    ALREADY_IN_ORGANISATION = "already_in_organisation"
    INVALID_INVITATION = "invalid_invitation"
    EMAIL_IN_OTHER_ORGANISATION = "email_in_other_organisation"
    UNKNOWN_USER = "unknown_user"


_MESSAGES = {
    AuthFailureReason.INVALID_CREDENTIALS: "Invalid email or password",
    AuthFailureReason.EMAIL_TAKEN: "Email already exists",
    AuthFailureReason.UNKNOWN_ORGANISATION: "Organisation not found",
    AuthFailureReason.ORGANISATION_NAME_TAKEN: "An organization with this name already exists",
    AuthFailureReason.ALREADY_IN_ORGANISATION: "User already belongs to an organization",
    AuthFailureReason.INVALID_INVITATION: "Invitation not found or has expired",
    AuthFailureReason.EMAIL_IN_OTHER_ORGANISATION: "Email already registered with a different organization",
    AuthFailureReason.UNKNOWN_USER: "User not found",
}


@dataclass(frozen=True)
class UserSummary:
    """Non-secret view of a user, safe to return to clients."""

    id: int
    email: str
    role: str
    organisation_id: int | None
    organisation_name: str | None = None
    team_member_id: int | None = None


@dataclass(frozen=True)
class AuthSuccess:
    user: UserSummary
    token: str
    setup_required: bool = False
    next_step: str | None = None


@dataclass(frozen=True)
class AuthFailure:
    reason: AuthFailureReason
    message: str

    @classmethod
    def of(cls, reason: AuthFailureReason) -> AuthFailure:
        return cls(reason=reason, message=_MESSAGES[reason])


@dataclass(frozen=True)
class OrganisationCreated:
    organisation_id: int
    organisation_name: str
    session: AuthSuccess | None  # None when a superadmin creates an organisation for others


AuthResult = AuthSuccess | AuthFailure


def normalise_email(email: str) -> str:
    return email.strip().lower()


class AuthStore(Protocol):
    """The slice of the identity store the auth flows need (see ``AuthRepo``)."""

    async def commit(self) -> None: ...
    async def get_user(self, user_id: int): ...
    async def get_user_by_email(self, email: str): ...
    async def create_user(self, email: str, password_hash: str, role: str, organisation_id: int | None = None): ...
    async def attach_user_to_organisation(self, user, organisation_id: int, role: str | None = None): ...
    async def get_organisation(self, organisation_id: int): ...
    async def get_organisation_by_name(self, name: str): ...
    async def create_organisation(self, name: str): ...
    async def get_team_member(self, team_member_id: int): ...
    async def get_team_member_for_user(self, user_id: int): ...
    async def link_team_member(self, team_member, user_id: int) -> None: ...
    async def get_pending_invitation(self, token: str): ...
    async def accept_invitation(self, invitation, accepted_at: datetime) -> None: ...


class AuthService:
    def __init__(self, store: AuthStore, codec: TokenCodec, bcrypt_rounds: int = DEFAULT_ROUNDS) -> None:
        self._store = store
        self._codec = codec
        self._rounds = bcrypt_rounds

    async def login(self, email: str, password: str) -> AuthResult:
        """Verify credentials and issue a session token.

        Unknown email and wrong password produce the same failure.
        """
        user = await self._store.get_user_by_email(normalise_email(email))
        if user is None:
            # Same bcrypt cost as a wrong password so timing does not reveal the email.
            verify_password(password, _dummy_hash(self._rounds))
            logger.info("login_failed", user_known=False)
            return AuthFailure.of(AuthFailureReason.INVALID_CREDENTIALS)
        if not verify_password(password, user.password_hash):
            logger.info("login_failed", user_known=True)
            return AuthFailure.of(AuthFailureReason.INVALID_CREDENTIALS)

        success = await self._session_for(user)
        logger.info("login_succeeded", user_id=user.id, organisation_id=user.organisation_id)
        return success

    async def register(
        self, email: str, password: str, organisation_id: int | None = None
    ) -> AuthResult:
        """Create a user. Without an organisation the caller must run onboarding next."""
        email = normalise_email(email)
        if await self._store.get_user_by_email(email) is not None:
            return AuthFailure.of(AuthFailureReason.EMAIL_TAKEN)

        role = Role.ADMIN
        if organisation_id is not None:
            if await self._store.get_organisation(organisation_id) is None:
                return AuthFailure.of(AuthFailureReason.UNKNOWN_ORGANISATION)
            role = Role.MEMBER

        try:
            user = await self._store.create_user(
                email=email,
                password_hash=hash_password(password, rounds=self._rounds),
                role=role.value,
                organisation_id=organisation_id,
            )
            await self._store.commit()
        except DuplicateRecord:
            logger.info("register_conflict", email_taken=True)
            return AuthFailure.of(AuthFailureReason.EMAIL_TAKEN)
        logger.info("user_registered", user_id=user.id, organisation_id=organisation_id)
        return await self._session_for(user)

    async def create_organisation(self, principal: Principal, name: str) -> OrganisationCreated | AuthFailure:
        """Onboarding step: create an organisation and move the caller into it.

        The caller's previous token keeps verifying but no longer reflects its
        tenant; the returned session carries the new ``organisation_id``.
        """
        if principal.has_tenant and not principal.is_superadmin:
            return AuthFailure.of(AuthFailureReason.ALREADY_IN_ORGANISATION)
        if await self._store.get_organisation_by_name(name) is not None:
            return AuthFailure.of(AuthFailureReason.ORGANISATION_NAME_TAKEN)

        user = await self._store.get_user(principal.user_id)
        if user is None:
            return AuthFailure.of(AuthFailureReason.UNKNOWN_USER)

        try:
            org = await self._store.create_organisation(name)
            if not principal.has_tenant:
                role = None if principal.is_superadmin else Role.ADMIN.value
                await self._store.attach_user_to_organisation(user, org.id, role=role)
            await self._store.commit()
        except DuplicateRecord:
            logger.info("organisation_conflict", name=name)
            return AuthFailure.of(AuthFailureReason.ORGANISATION_NAME_TAKEN)
        session = None
        if user.organisation_id == org.id:
            session = await self._session_for(user)

        logger.info("organisation_created", organisation_id=org.id, user_id=user.id)
        return OrganisationCreated(
            organisation_id=org.id,
            organisation_name=org.organisation_name,
            session=session,
        )

    async def join(self, invitation_token: str, password: str) -> AuthResult:
        """Accept a team invitation, creating the user when needed."""
        claims = self._codec.verify_invitation(invitation_token)
        if claims is None:
            return AuthFailure.of(AuthFailureReason.INVALID_INVITATION)

        invitation = await self._store.get_pending_invitation(invitation_token)
        now = datetime.now(UTC)
        if invitation is None or _as_utc(invitation.expires_at) <= now:
            return AuthFailure.of(AuthFailureReason.INVALID_INVITATION)

        team_member = await self._store.get_team_member(claims.team_member_id)
        if team_member is None or team_member.organisation_id != claims.organisation_id:
            return AuthFailure.of(AuthFailureReason.INVALID_INVITATION)

        email = normalise_email(claims.email)
        user = await self._store.get_user_by_email(email)
        if user is not None:
            if user.organisation_id != claims.organisation_id:
                return AuthFailure.of(AuthFailureReason.EMAIL_IN_OTHER_ORGANISATION)
            if not verify_password(password, user.password_hash):
                return AuthFailure.of(AuthFailureReason.INVALID_CREDENTIALS)
        try:
            if user is None:
                user = await self._store.create_user(
                    email=email,
                    password_hash=hash_password(password, rounds=self._rounds),
                    role=claims.role.value,
                    organisation_id=claims.organisation_id,
                )
            if team_member.user_id is None:
                await self._store.link_team_member(team_member, user.id)
            await self._store.accept_invitation(invitation, now)
            await self._store.commit()
        except DuplicateRecord:
            logger.info("join_conflict", team_member_id=team_member.id)
            return AuthFailure.of(AuthFailureReason.EMAIL_TAKEN)
        logger.info("invitation_accepted", user_id=user.id, team_member_id=team_member.id)
        return await self._session_for(user)

    async def _session_for(self, user) -> AuthSuccess:
        org_name = None
        if user.organisation_id is not None:
            org = await self._store.get_organisation(user.organisation_id)
            org_name = org.organisation_name if org is not None else None
        team_member = await self._store.get_team_member_for_user(user.id)
        team_member_id = team_member.id if team_member is not None else None

        claims = Claims(
            user_id=user.id,
            email=user.email,
            role=Role(user.role),
            organisation_id=user.organisation_id,
            team_member_id=team_member_id,
        )
        summary = UserSummary(
            id=user.id,
            email=user.email,
            role=user.role,
            organisation_id=user.organisation_id,
            organisation_name=org_name,
            team_member_id=team_member_id,
        )
        setup_required = user.organisation_id is None
        return AuthSuccess(
            user=summary,
            token=self._codec.issue(claims),
            setup_required=setup_required,
            next_step=ONBOARDING_STEP if setup_required else None,
        )


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    return hash_password("not-a-real-password", rounds=rounds)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
