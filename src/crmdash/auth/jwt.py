"""JWT token creation and verification.

Session tokens and invitation tokens are signed with the same HS256 secret but
carry a distinct ``type`` claim, so one can never be replayed as the other.
"""

from __future__ import annotations

import time
from typing import Any

import jwt
import structlog

from crmdash.auth.models import Claims, InvitationClaims, Principal, Role

logger = structlog.get_logger(__name__)

SESSION_TOKEN = "session"
INVITATION_TOKEN = "invitation"
DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60


def _now() -> int:
    return int(time.time())


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"expected integer claim, got {value!r}")
    return value


class TokenCodec:
    """Signs and verifies compact, time-boxed claim sets.

    ``verify`` and ``verify_invitation`` never raise for a bad token: they
    return ``None`` for malformed input, a bad signature, an unexpected
    algorithm, expiry, the wrong token type or malformed claims.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        default_ttl: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self.default_ttl = default_ttl

    # ------------------------------------------------------------------
    # Session tokens
    # ------------------------------------------------------------------

    def issue(self, claims: Claims, ttl_seconds: int | None = None) -> str:
        """Create a signed session token carrying ``claims``."""
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        now = _now()
        payload: dict[str, Any] = {
            "id": claims.user_id,
            "email": claims.email,
            "role": claims.role.value,
            "type": SESSION_TOKEN,
            "iat": now,
            "exp": now + ttl,
        }
        if claims.organisation_id is not None:
            payload["organisation_id"] = claims.organisation_id
        if claims.team_member_id is not None:
            payload["team_member_id"] = claims.team_member_id
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str | None) -> Principal | None:
        payload = self._decode(token, SESSION_TOKEN)
        if payload is None:
            return None
        try:
            user_id = _optional_int(payload["id"])
            if user_id is None:
                raise ValueError("missing id")
            claims = Claims(
                user_id=user_id,
                email=str(payload["email"]),
                role=Role(payload["role"]),
                organisation_id=_optional_int(payload.get("organisation_id")),
                team_member_id=_optional_int(payload.get("team_member_id")),
            )
            return Principal(claims=claims, issued_at=int(payload["iat"]), expires_at=int(payload["exp"]))
        except (KeyError, TypeError, ValueError) as exc:
            logger.info("token_rejected", reason="malformed_claims", error=str(exc))
            return None

    # ------------------------------------------------------------------
    # Invitation tokens
    # ------------------------------------------------------------------

    def issue_invitation(self, invitation: InvitationClaims, ttl_seconds: int | None = None) -> str:
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        now = _now()
        payload = {
            "team_member_id": invitation.team_member_id,
            "organisation_id": invitation.organisation_id,
            "email": invitation.email,
            "role": invitation.role.value,
            "type": INVITATION_TOKEN,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify_invitation(self, token: str | None) -> InvitationClaims | None:
        payload = self._decode(token, INVITATION_TOKEN)
        if payload is None:
            return None
        try:
            team_member_id = _optional_int(payload["team_member_id"])
            organisation_id = _optional_int(payload["organisation_id"])
            if team_member_id is None or organisation_id is None:
                raise ValueError("missing invitation ids")
            return InvitationClaims(
                team_member_id=team_member_id,
                organisation_id=organisation_id,
                email=str(payload["email"]),
                role=Role(payload["role"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.info("invitation_rejected", reason="malformed_claims", error=str(exc))
            return None

    # ------------------------------------------------------------------

    def _decode(self, token: str | None, expected_type: str) -> dict[str, Any] | None:
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.PyJWTError as exc:
            logger.info("token_rejected", reason=type(exc).__name__)
            return None
        if payload.get("type") != expected_type:
            logger.info("token_rejected", reason="wrong_type", expected=expected_type)
            return None
        return payload
