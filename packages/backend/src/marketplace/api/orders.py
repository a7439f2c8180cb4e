"""Orders API — every route requires authentication.

Learn: Routes for a user's own orders:
- POST /orders → place an order (201)
- GET /orders/:id → order with assistant, transactions, reviews
- PUT /orders/:id/cancel → cancel a pending order
- POST /orders/:id/review → review a completed order (201)

Auth is applied at the include_router level (see api/__init__.py);
handlers still take the identity to scope every query by user.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.deps import get_settings
from marketplace.auth.dependencies import CurrentIdentity, get_current_user
from marketplace.config import Settings
from marketplace.db.engine import get_db
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.order import (
    OrderCreate,
    OrderDetail,
    OrderRead,
    ReviewCreate,
    ReviewRead,
)
from marketplace.services.order_service import OrderService

router = APIRouter(prefix="/orders")


def _svc(
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
) -> OrderService:
    return OrderService(
        db,
        default_amount=config.order_default_amount,
        currency=config.order_currency,
    )


@router.post(
    "",
    response_model=ApiResponse[OrderRead],
    response_model_exclude_unset=True,
    status_code=201,
)
async def create_order(
    body: OrderCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: OrderService = Depends(_svc),
):
    order = await svc.create_order(
        identity.user_id,
        body.assistant_id,
        [
            item.model_dump(by_alias=True, exclude_none=True)
            for item in body.service_details
        ],
        notes=body.notes,
    )
    return {"success": True, "data": order, "message": "Order created successfully"}


@router.get(
    "/{order_id}",
    response_model=ApiResponse[OrderDetail],
    response_model_exclude_unset=True,
)
async def get_order(
    order_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: OrderService = Depends(_svc),
):
    order = await svc.get_order(identity.user_id, order_id)
    return {"success": True, "data": order}


@router.put(
    "/{order_id}/cancel",
    response_model=ApiResponse[OrderRead],
    response_model_exclude_unset=True,
)
async def cancel_order(
    order_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: OrderService = Depends(_svc),
):
    """Cancel an order that is still pending."""
    order = await svc.cancel_order(identity.user_id, order_id)
    return {"success": True, "data": order, "message": "Order cancelled successfully"}


@router.post(
    "/{order_id}/review",
    response_model=ApiResponse[ReviewRead],
    response_model_exclude_unset=True,
    status_code=201,
)
async def add_review(
    order_id: uuid.UUID,
    body: ReviewCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: OrderService = Depends(_svc),
):
    review = await svc.add_review(
        identity.user_id, order_id, body.rating, comment=body.comment
    )
    return {"success": True, "data": review, "message": "Review added successfully"}
