"""User activity API — stats, order history and reviews of the caller."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.auth.dependencies import CurrentIdentity, get_current_user
from marketplace.db.engine import get_db
from marketplace.schemas.common import ApiResponse, PageMeta, PaginatedResponse
from marketplace.schemas.order import OrderWithReviews, UserReviewRead, UserStats
from marketplace.services.user_service import UserActivityService

router = APIRouter(prefix="/users")


def _svc(db: AsyncSession = Depends(get_db)) -> UserActivityService:
    return UserActivityService(db)


@router.get(
    "/stats",
    response_model=ApiResponse[UserStats],
    response_model_exclude_unset=True,
)
async def get_stats(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserActivityService = Depends(_svc),
):
    return {"success": True, "data": await svc.stats(identity.user_id)}


@router.get(
    "/orders",
    response_model=PaginatedResponse[OrderWithReviews],
    response_model_exclude_unset=True,
)
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserActivityService = Depends(_svc),
):
    orders, total = await svc.list_orders(identity.user_id, page=page, limit=limit)
    return {
        "success": True,
        "data": orders,
        "meta": PageMeta.build(page=page, limit=limit, total=total),
    }


@router.get(
    "/reviews",
    response_model=ApiResponse[list[UserReviewRead]],
    response_model_exclude_unset=True,
)
async def list_reviews(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserActivityService = Depends(_svc),
):
    return {"success": True, "data": await svc.list_reviews(identity.user_id)}
