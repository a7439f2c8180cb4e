"""Assistant catalog API.

Learn: Public routes — anyone can browse. They use the optional auth
dependency so a signed-in user is recognised (and logged) without
anonymous visitors being rejected.
- GET /assistants → paginated list (category, search filters)
- GET /assistants/categories → categories with counts
- GET /assistants/:slug → detail with latest reviews
- POST /assistants/:slug/demo → canned demo interaction
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.deps import get_settings
from marketplace.auth.dependencies import CurrentIdentity, get_current_user_optional
from marketplace.config import Settings
from marketplace.db.engine import get_db
from marketplace.schemas.assistant import (
    AssistantDetail,
    AssistantListItem,
    CategoryRead,
    DemoRequest,
    DemoResponse,
)
from marketplace.schemas.common import ApiResponse, PageMeta, PaginatedResponse
from marketplace.services.catalog_service import CatalogService

logger = structlog.get_logger()

router = APIRouter(prefix="/assistants")


def _svc(db: AsyncSession = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


@router.get(
    "",
    response_model=PaginatedResponse[AssistantListItem],
    response_model_exclude_unset=True,
)
async def list_assistants(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    category: Optional[str] = Query(None, max_length=50),
    search: Optional[str] = Query(None, max_length=100),
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
    config: Settings = Depends(get_settings),
    svc: CatalogService = Depends(_svc),
):
    """Active assistants, newest first, with rating and order counts."""
    limit = min(limit or config.default_page_size, config.max_page_size)
    items, total = await svc.list_assistants(
        page=page, limit=limit, category=category, search=search
    )
    if identity:
        logger.debug("catalog.browse", user_id=str(identity.user_id), category=category)
    return {
        "success": True,
        "data": items,
        "meta": PageMeta.build(page=page, limit=limit, total=total),
    }


@router.get(
    "/categories",
    response_model=ApiResponse[list[CategoryRead]],
    response_model_exclude_unset=True,
)
async def list_categories(svc: CatalogService = Depends(_svc)):
    return {"success": True, "data": await svc.list_categories()}


@router.get(
    "/{slug}",
    response_model=ApiResponse[AssistantDetail],
    response_model_exclude_unset=True,
)
async def get_assistant(
    slug: str,
    svc: CatalogService = Depends(_svc),
):
    assistant = await svc.get_assistant(slug)
    return {"success": True, "data": assistant}


@router.post(
    "/{slug}/demo",
    response_model=ApiResponse[DemoResponse],
    response_model_exclude_unset=True,
)
async def demo(
    slug: str,
    body: DemoRequest,
    config: Settings = Depends(get_settings),
    svc: CatalogService = Depends(_svc),
):
    """Try an assistant before ordering."""
    result = await svc.demo(
        slug, body.message, max_length=config.demo_message_max_length
    )
    return {
        "success": True,
        "data": result,
        "message": "Demo interaction completed",
    }
