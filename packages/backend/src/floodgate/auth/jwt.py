"""JWT session token issuing and verification.

Learn: Tokens are stateless. There is no server-side list of issued
tokens, so "logout" only clears the cookie; a copied token stays valid
until it expires (one week by default).

Payload layout:
    {"sub": username, "claims": {...}, "iat": ..., "exp": iat + lifetime}
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from floodgate.config import settings


class InvalidTokenError(Exception):
    """Raised for any token that cannot be trusted.

    Expired, tampered and malformed tokens all raise this with the same
    message so callers can't tell them apart.
    """


@dataclass(frozen=True)
class TokenPayload:
    subject: str
    claims: dict[str, Any] = field(default_factory=dict)
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class TokenIssuer:
    """Signs and checks session tokens with one process-wide secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime_seconds: int = 60 * 60 * 24 * 7,
    ):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self.algorithm = algorithm
        self.lifetime = timedelta(seconds=lifetime_seconds)

    def issue(
        self,
        subject: str,
        claims: Optional[dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Create a signed token for `subject` carrying `claims`."""
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": subject,
            "claims": dict(claims or {}),
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenPayload:
        """Verify and decode a token.

        Raises InvalidTokenError on failure.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.PyJWTError:
            raise InvalidTokenError("Invalid token")

        claims = payload.get("claims")
        if not isinstance(claims, dict):
            raise InvalidTokenError("Invalid token")

        return TokenPayload(
            subject=payload["sub"],
            claims=claims,
            issued_at=datetime.fromtimestamp(payload["iat"], timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], timezone.utc),
        )


def issuer_from_settings() -> TokenIssuer:
    return TokenIssuer(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        lifetime_seconds=settings.token_lifetime_seconds,
    )
