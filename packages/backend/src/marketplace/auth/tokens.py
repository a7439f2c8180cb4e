"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (15 min), used for API calls
- Refresh token: long-lived (7 days), used to get a new token pair

Each kind has its own signing secret, so a leaked access secret can't be
used to mint refresh tokens (and an access token is never accepted where
a refresh token is expected). Nothing is stored server-side; a token is
valid as long as its signature and expiry check out. Every token gets a
random jti, so two tokens issued in the same second still differ.
"""

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import jwt

from marketplace.config import Settings, parse_duration


class TokenError(Exception):
    """Raised when token verification fails."""


class ExpiredTokenError(TokenError):
    """The token's exp claim is in the past."""


class InvalidTokenError(TokenError):
    """Bad signature, wrong key, tampered or malformed token."""


class TokenKind(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class AuthTokens:
    access_token: str
    refresh_token: str
    expires_in: int  # seconds until the access token expires


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Signs and verifies both token kinds.

    Build one per application (see main.create_app) and hand it to the
    code that needs it; it holds no mutable state.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_expires_in: str = "15m",
        refresh_expires_in: str = "7d",
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = _utcnow,
    ):
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens need different secrets")
        self._secrets = {
            TokenKind.ACCESS: access_secret,
            TokenKind.REFRESH: refresh_secret,
        }
        self._lifetimes = {
            TokenKind.ACCESS: parse_duration(access_expires_in),
            TokenKind.REFRESH: parse_duration(refresh_expires_in),
        }
        self.algorithm = algorithm
        self._clock = clock

    @classmethod
    def from_settings(cls, config: Settings) -> "TokenIssuer":
        return cls(
            access_secret=config.jwt_secret,
            refresh_secret=config.jwt_refresh_secret,
            access_expires_in=config.jwt_expires_in,
            refresh_expires_in=config.jwt_refresh_expires_in,
            algorithm=config.jwt_algorithm,
        )

    @property
    def access_expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return self._lifetimes[TokenKind.ACCESS]

    @property
    def refresh_expires_in(self) -> int:
        return self._lifetimes[TokenKind.REFRESH]

    def _sign(self, kind: TokenKind, claims: dict[str, Any]) -> str:
        issued_at = self._clock()
        payload = {
            **claims,
            "jti": uuid.uuid4().hex,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self._lifetimes[kind]),
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=self.algorithm)

    def issue_access_token(
        self, user_id: uuid.UUID | str, email: str, subscription_tier: str
    ) -> str:
        """Create a JWT access token."""
        return self._sign(
            TokenKind.ACCESS,
            {"sub": str(user_id), "email": email, "tier": subscription_tier},
        )

    def issue_refresh_token(
        self, user_id: uuid.UUID | str, email: str, token_version: int = 0
    ) -> str:
        """Create a JWT refresh token.

        ver lets the server revoke every refresh token of a user at once
        by bumping User.token_version.
        """
        return self._sign(
            TokenKind.REFRESH,
            {"sub": str(user_id), "email": email, "ver": token_version},
        )

    def issue_pair(self, user: Any) -> AuthTokens:
        """Issue both tokens for a user row (or anything shaped like one)."""
        return AuthTokens(
            access_token=self.issue_access_token(
                user.id, user.email, user.subscription_tier
            ),
            refresh_token=self.issue_refresh_token(
                user.id, user.email, getattr(user, "token_version", 0) or 0
            ),
            expires_in=self.access_expires_in,
        )

    def verify(self, token: str, kind: TokenKind = TokenKind.ACCESS) -> dict:
        """Verify and decode a token of the given kind.

        Returns the payload dict on success.
        Raises ExpiredTokenError or InvalidTokenError on failure.
        """
        try:
            return jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError(f"{kind.value.capitalize()} token has expired")
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid {kind.value} token: {e}")


def user_id_from_claims(claims: dict) -> Optional[uuid.UUID]:
    """Parse the sub claim, or None if it isn't a UUID."""
    try:
        return uuid.UUID(claims["sub"])
    except (KeyError, TypeError, ValueError):
        return None
