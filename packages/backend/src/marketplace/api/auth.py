"""Auth API — registration, login, tokens and profile.

Learn: Routes for the account lifecycle:
- POST /auth/register → create account, returns user + tokens (201)
- POST /auth/login → email/password → user + tokens
- POST /auth/refresh → refresh token → new token pair
- GET /auth/profile → current user's profile
- PUT /auth/profile → partial profile update
- PUT /auth/change-password → verify current password, set new one
- POST /auth/logout → revoke the caller's refresh tokens
- DELETE /auth/account → delete the account and its orders/reviews
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.deps import get_settings
from marketplace.auth.dependencies import (
    CurrentIdentity,
    get_current_user,
    get_token_issuer,
)
from marketplace.auth.tokens import TokenIssuer
from marketplace.config import Settings
from marketplace.db.engine import get_db
from marketplace.errors import ValidationFailedError
from marketplace.schemas.auth import (
    AuthResult,
    ChangePasswordRequest,
    LoginRequest,
    LogoutRequest,
    ProfileUpdate,
    RefreshRequest,
    RegisterRequest,
    TokensRead,
    UserRead,
)
from marketplace.schemas.common import ApiResponse
from marketplace.services.auth_service import AuthService

router = APIRouter(prefix="/auth")


def _svc(
    db: AsyncSession = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
    config: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(db, issuer, bcrypt_rounds=config.bcrypt_rounds)


# ─── Register / login / refresh ─────────────────────────


@router.post(
    "/register",
    response_model=ApiResponse[AuthResult],
    response_model_exclude_unset=True,
    status_code=201,
)
async def register(body: RegisterRequest, svc: AuthService = Depends(_svc)):
    """Create a new user account and sign it in."""
    user, tokens = await svc.register(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        address=body.address,
    )
    return {
        "success": True,
        "data": {"user": user, "tokens": tokens},
        "message": "User registered successfully",
    }


@router.post(
    "/login",
    response_model=ApiResponse[AuthResult],
    response_model_exclude_unset=True,
)
async def login(body: LoginRequest, svc: AuthService = Depends(_svc)):
    """Login with email and password → user + JWT tokens."""
    user, tokens = await svc.login(body.email, body.password)
    return {
        "success": True,
        "data": {"user": user, "tokens": tokens},
        "message": "Login successful",
    }


@router.post(
    "/refresh",
    response_model=ApiResponse[TokensRead],
    response_model_exclude_unset=True,
)
async def refresh(body: RefreshRequest, svc: AuthService = Depends(_svc)):
    """Exchange a refresh token for a new access + refresh pair."""
    if not body.refresh_token:
        raise ValidationFailedError("Refresh token is required")
    tokens = await svc.refresh_tokens(body.refresh_token)
    return {
        "success": True,
        "data": tokens,
        "message": "Tokens refreshed successfully",
    }


# ─── Profile ────────────────────────────────────────────


@router.get(
    "/profile",
    response_model=ApiResponse[UserRead],
    response_model_exclude_unset=True,
)
async def get_profile(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    profile = await svc.get_profile(identity.user_id)
    return {"success": True, "data": profile}


@router.put(
    "/profile",
    response_model=ApiResponse[UserRead],
    response_model_exclude_unset=True,
)
async def update_profile(
    body: ProfileUpdate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    """Update only the fields present in the request body."""
    profile = await svc.update_profile(
        identity.user_id, body.model_dump(exclude_unset=True)
    )
    return {
        "success": True,
        "data": profile,
        "message": "Profile updated successfully",
    }


@router.put(
    "/change-password",
    response_model=ApiResponse,
    response_model_exclude_unset=True,
)
async def change_password(
    body: ChangePasswordRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    await svc.change_password(
        identity.user_id, body.current_password, body.new_password
    )
    return {"success": True, "message": "Password changed successfully"}


# ─── Logout / delete ────────────────────────────────────


@router.post(
    "/logout",
    response_model=ApiResponse,
    response_model_exclude_unset=True,
)
async def logout(
    body: Optional[LogoutRequest] = None,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    """Always succeeds for an authenticated caller."""
    await svc.logout(identity.user_id, body.refresh_token if body else None)
    return {"success": True, "message": "Logout successful"}


@router.delete(
    "/account",
    response_model=ApiResponse,
    response_model_exclude_unset=True,
)
async def delete_account(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    await svc.delete_account(identity.user_id)
    return {"success": True, "message": "Account deleted successfully"}
