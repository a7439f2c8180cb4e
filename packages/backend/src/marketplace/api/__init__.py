"""API route aggregation.

All routers registered here get mounted in main.py under the configured
prefix (/api/v1 by default).

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all routes in each router
without modifying individual handlers. The catalog and auth routers
are open; auth protects its own profile/session routes per handler.
"""

from fastapi import APIRouter, Depends

from marketplace.api.assistants import router as assistants_router
from marketplace.api.auth import router as auth_router
from marketplace.api.orders import router as orders_router
from marketplace.api.users import router as users_router
from marketplace.auth.dependencies import get_current_user

# All protected routers require authentication
_auth = [Depends(get_current_user)]


def build_api_router(prefix: str = "/api/v1") -> APIRouter:
    api_router = APIRouter(prefix=prefix)

    # Open routes, no auth required
    api_router.include_router(auth_router, tags=["auth"])
    api_router.include_router(assistants_router, tags=["assistants"])

    # Protected routes require a valid access token
    api_router.include_router(orders_router, tags=["orders", "reviews"], dependencies=_auth)
    api_router.include_router(users_router, tags=["users"], dependencies=_auth)
    return api_router
