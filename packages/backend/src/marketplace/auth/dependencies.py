"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current user from the request.

Three gates:
1. get_current_user → mandatory; 401 unless a valid Bearer token for an
   existing user is present
2. get_current_user_optional → same checks, but any failure just means
   "anonymous" (None)
3. require_tier(...) → 403 unless a valid identity is present and its
   subscription tier is in the allowed set
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth.tokens import (
    ExpiredTokenError,
    TokenError,
    TokenIssuer,
    TokenKind,
    user_id_from_claims,
)
from marketplace.db.engine import get_db
from marketplace.db.models import User
from marketplace.errors import AuthenticationError, AuthorizationError


@dataclass(frozen=True)
class CurrentIdentity:
    """The authenticated user making the request.

    Learn: Lives for one request only. Ownership checks downstream
    (orders, reviews) compare against user_id.
    """

    user_id: uuid.UUID
    email: str
    subscription_tier: str


def get_token_issuer(request: Request) -> TokenIssuer:
    """The issuer built by create_app() for this application."""
    return request.app.state.token_issuer


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[7:].strip() or None


async def _resolve_identity(
    token: str, issuer: TokenIssuer, db: AsyncSession
) -> CurrentIdentity:
    """Verify an access token and load the user it names.

    Identity fields come from the stored row, so a tier change applies
    immediately rather than when the token is next refreshed.
    """
    try:
        claims = issuer.verify(token, TokenKind.ACCESS)
    except ExpiredTokenError:
        raise AuthenticationError("Access token expired")
    except TokenError:
        raise AuthenticationError("Invalid access token")

    user_id = user_id_from_claims(claims)
    if user_id is None:
        raise AuthenticationError("Invalid access token")

    user = await db.get(User, user_id)
    if not user:
        raise AuthenticationError("User no longer exists")

    return CurrentIdentity(
        user_id=user.id,
        email=user.email,
        subscription_tier=user.subscription_tier,
    )


async def get_current_user(
    authorization: Optional[str] = Header(None),
    issuer: TokenIssuer = Depends(get_token_issuer),
    db: AsyncSession = Depends(get_db),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if missing or invalid).

    Learn: This is the "hard" auth dependency. Used for endpoints
    that require authentication.
    """
    token = _bearer_token(authorization)
    if not token:
        raise AuthenticationError("Access token required")
    return await _resolve_identity(token, issuer, db)


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
    issuer: TokenIssuer = Depends(get_token_issuer),
    db: AsyncSession = Depends(get_db),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional — returns None if no valid auth).

    Learn: This is the "soft" auth dependency. Used for endpoints that
    work both authenticated and unauthenticated, e.g. the catalog.
    """
    token = _bearer_token(authorization)
    if not token:
        return None
    try:
        return await _resolve_identity(token, issuer, db)
    except AuthenticationError:
        return None


def require_tier(*tiers: str):
    """Build a dependency that only lets the given subscription tiers through.

    Usage:
        @router.get("/premium", dependencies=[Depends(require_tier("premium", "business"))])
    """
    allowed = frozenset(tiers)

    async def _check(
        identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
    ) -> CurrentIdentity:
        if identity is None:
            raise AuthorizationError("Authentication required")
        if identity.subscription_tier not in allowed:
            raise AuthorizationError("Insufficient permissions")
        return identity

    return _check
