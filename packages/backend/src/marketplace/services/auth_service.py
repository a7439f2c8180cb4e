"""Auth service — registration, login, token refresh and profile management.

Learn: Service layer separates business logic from HTTP routing.
Routes build an AuthService per request (db session + token issuer) and
translate nothing: every failure is raised as a typed ApiError that the
app-level handlers turn into the JSON envelope.

Token revocation: each user row carries token_version and every refresh
token embeds it as "ver". logout() and change_password() bump the
version, which kills all outstanding refresh tokens for that user.
Access tokens are not tracked and stay valid until they expire.
"""

import asyncio
import uuid
from typing import Any, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth.password import DEFAULT_ROUNDS, hash_password, verify_password
from marketplace.auth.tokens import (
    AuthTokens,
    TokenError,
    TokenIssuer,
    TokenKind,
    user_id_from_claims,
)
from marketplace.db.models import SubscriptionTier, User
from marketplace.errors import AuthenticationError, ConflictError, NotFoundError

logger = structlog.get_logger()

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_REFRESH_TOKEN = "Invalid refresh token"

PROFILE_FIELDS = ("first_name", "last_name", "phone", "address", "preferences")
JSON_PROFILE_FIELDS = ("address", "preferences")


class AuthService:
    """Business logic for user accounts and sessions."""

    def __init__(
        self,
        db: AsyncSession,
        issuer: TokenIssuer,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
    ):
        self.db = db
        self.issuer = issuer
        self.bcrypt_rounds = bcrypt_rounds

    # ─── Helpers ────────────────────────────────────────

    async def _hash(self, password: str) -> str:
        return await asyncio.to_thread(hash_password, password, self.bcrypt_rounds)

    async def _verify(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(verify_password, password, password_hash)

    async def _get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def _get_user(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User")
        return user

    # ─── Registration & login ───────────────────────────

    async def register(
        self,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[dict[str, Any]] = None,
    ) -> tuple[User, AuthTokens]:
        """Create an account and sign the new user in.

        Learn: The SELECT catches the common duplicate case with a clean
        message; the unique index on users.email catches the race where
        two requests pass the SELECT at the same time. The loser gets the
        same ConflictError.
        """
        if await self._get_by_email(email):
            raise ConflictError("User with this email already exists")

        user = User(
            email=email,
            password_hash=await self._hash(password),
            first_name=first_name or None,
            last_name=last_name or None,
            phone=phone or None,
            address=address or {},
            preferences={},
            subscription_tier=SubscriptionTier.FREE.value,
            token_version=0,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info("auth.register_conflict", email=email)
            raise ConflictError("User with this email already exists")
        await self.db.refresh(user)

        logger.info("auth.registered", user_id=str(user.id))
        return user, self.issuer.issue_pair(user)

    async def login(self, email: str, password: str) -> tuple[User, AuthTokens]:
        """Check credentials and issue a token pair.

        Unknown email and wrong password produce the same error so the
        endpoint can't be used to probe which emails are registered.
        """
        user = await self._get_by_email(email)
        if not user or not await self._verify(password, user.password_hash):
            logger.info("auth.login_failed")
            raise AuthenticationError(INVALID_CREDENTIALS)

        logger.info("auth.login", user_id=str(user.id))
        return user, self.issuer.issue_pair(user)

    async def refresh_tokens(self, refresh_token: str) -> AuthTokens:
        """Exchange a refresh token for a new access + refresh pair.

        Every failure (bad signature, expired, access token passed in,
        deleted user, revoked version) collapses into one error.
        """
        try:
            claims = self.issuer.verify(refresh_token, TokenKind.REFRESH)
        except TokenError as e:
            logger.info("auth.refresh_rejected", reason=str(e))
            raise AuthenticationError(INVALID_REFRESH_TOKEN)

        user_id = user_id_from_claims(claims)
        user = await self.db.get(User, user_id) if user_id else None
        if not user:
            logger.info("auth.refresh_rejected", reason="user not found")
            raise AuthenticationError(INVALID_REFRESH_TOKEN)
        if claims.get("ver", 0) != user.token_version:
            logger.info("auth.refresh_rejected", reason="revoked", user_id=str(user.id))
            raise AuthenticationError(INVALID_REFRESH_TOKEN)

        return self.issuer.issue_pair(user)

    # ─── Profile ────────────────────────────────────────

    async def get_profile(self, user_id: uuid.UUID) -> User:
        return await self._get_user(user_id)

    async def update_profile(
        self, user_id: uuid.UUID, updates: dict[str, Any]
    ) -> User:
        """Apply only the fields present in updates.

        A key that is present overwrites the stored value, even with ""
        or None; a missing key leaves the column untouched. JSON columns
        treat None as an empty object.
        """
        user = await self._get_user(user_id)
        for field in PROFILE_FIELDS:
            if field not in updates:
                continue
            value = updates[field]
            if field in JSON_PROFILE_FIELDS and value is None:
                value = {}
            setattr(user, field, value)

        await self.db.commit()
        await self.db.refresh(user)
        logger.info("auth.profile_updated", user_id=str(user_id), fields=sorted(updates))
        return user

    async def change_password(
        self, user_id: uuid.UUID, current_password: str, new_password: str
    ) -> None:
        """Replace the password after checking the current one.

        Bumps token_version so refresh tokens issued under the old
        password stop working.
        """
        user = await self._get_user(user_id)
        if not await self._verify(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")

        user.password_hash = await self._hash(new_password)
        user.token_version += 1
        await self.db.commit()
        logger.info("auth.password_changed", user_id=str(user_id))

    # ─── Logout & deletion ──────────────────────────────

    async def logout(
        self, user_id: uuid.UUID, refresh_token: Optional[str] = None
    ) -> bool:
        """Log the user out.

        With a refresh token that verifies and belongs to the caller, the
        user's token_version is bumped (revoking every refresh token they
        hold). Anything else is only recorded. Returns True if tokens
        were revoked.
        """
        revoked = False
        if refresh_token:
            try:
                claims = self.issuer.verify(refresh_token, TokenKind.REFRESH)
            except TokenError:
                claims = None
            if claims and user_id_from_claims(claims) == user_id:
                user = await self.db.get(User, user_id)
                if user and claims.get("ver", 0) == user.token_version:
                    user.token_version += 1
                    await self.db.commit()
                    revoked = True

        logger.info(
            "auth.logout",
            user_id=str(user_id),
            token_prefix=refresh_token[:20] if refresh_token else None,
            revoked=revoked,
        )
        return revoked

    async def delete_account(self, user_id: uuid.UUID) -> None:
        """Delete the user; their orders and reviews go with them."""
        user = await self._get_user(user_id)
        await self.db.delete(user)
        await self.db.commit()
        logger.info("auth.account_deleted", user_id=str(user_id))
