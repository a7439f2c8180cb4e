"""Order service — placing, viewing, cancelling and reviewing orders.

Learn: Every query is scoped by user_id, so a user can never see or
touch somebody else's order; a foreign order looks exactly like a
missing one (404).

Status rules:
- only pending orders can be cancelled
- only completed orders can be reviewed, once per user
"""

import uuid
from decimal import Decimal
from typing import Any, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.db.models import Assistant, Order, OrderStatus, Review
from marketplace.errors import ConflictError, NotFoundError

logger = structlog.get_logger()


class OrderService:
    """Business logic for a user's orders and reviews."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        default_amount: float = 29.99,
        currency: str = "USD",
    ):
        self.db = db
        self.default_amount = Decimal(str(default_amount))
        self.currency = currency

    async def _load(self, order_id: uuid.UUID, user_id: uuid.UUID, *, detail: bool = False):
        options = [selectinload(Order.assistant)]
        if detail:
            options += [selectinload(Order.transactions), selectinload(Order.reviews)]
        q = (
            select(Order)
            .where(Order.id == order_id, Order.user_id == user_id)
            .options(*options)
            .execution_options(populate_existing=True)
        )
        return (await self.db.execute(q)).scalars().first()

    # ─── Orders ─────────────────────────────────────────

    async def create_order(
        self,
        user_id: uuid.UUID,
        assistant_id: uuid.UUID,
        service_details: list[dict[str, Any]],
        notes: Optional[str] = None,
    ) -> Order:
        """Place an order for an active assistant.

        TODO: price from the assistant's pricing tiers and open a payment
        transaction once checkout is integrated; until then every order
        uses the configured flat amount.
        """
        q = select(Assistant).where(
            Assistant.id == assistant_id, Assistant.is_active.is_(True)
        )
        assistant = (await self.db.execute(q)).scalars().first()
        if not assistant:
            raise NotFoundError(message="Assistant not found or not available")

        order = Order(
            user_id=user_id,
            assistant_id=assistant.id,
            service_details=service_details,
            total_amount=self.default_amount,
            currency=self.currency,
            notes=notes,
        )
        self.db.add(order)
        await self.db.commit()

        logger.info(
            "order.created",
            order_id=str(order.id),
            user_id=str(user_id),
            assistant=assistant.slug,
        )
        return await self._load(order.id, user_id)

    async def get_order(self, user_id: uuid.UUID, order_id: uuid.UUID) -> Order:
        order = await self._load(order_id, user_id, detail=True)
        if not order:
            raise NotFoundError("Order")
        return order

    async def cancel_order(self, user_id: uuid.UUID, order_id: uuid.UUID) -> Order:
        """Move a pending order to cancelled."""
        order = await self._load(order_id, user_id)
        if not order or order.status != OrderStatus.PENDING.value:
            raise NotFoundError(message="Order not found or cannot be cancelled")

        order.status = OrderStatus.CANCELLED.value
        await self.db.commit()
        logger.info("order.cancelled", order_id=str(order_id), user_id=str(user_id))
        return await self._load(order_id, user_id)

    # ─── Reviews ────────────────────────────────────────

    async def add_review(
        self,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
        rating: int,
        comment: Optional[str] = None,
    ) -> Review:
        """Review a completed order. One review per order and user."""
        order = await self._load(order_id, user_id)
        if not order or order.status != OrderStatus.COMPLETED.value:
            raise NotFoundError(message="Order not found or not eligible for review")

        existing = await self.db.execute(
            select(Review.id).where(Review.order_id == order_id, Review.user_id == user_id)
        )
        if existing.first():
            raise ConflictError("Review already exists for this order")

        review = Review(
            user_id=user_id,
            assistant_id=order.assistant_id,
            order_id=order_id,
            rating=rating,
            comment=(comment or "").strip() or None,
        )
        self.db.add(review)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Review already exists for this order")

        logger.info("order.reviewed", order_id=str(order_id), rating=rating)
        q = (
            select(Review)
            .where(Review.id == review.id)
            .options(selectinload(Review.assistant))
        )
        return (await self.db.execute(q)).scalars().one()
