"""User activity service — a user's order history, reviews and totals."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.db.models import Order, OrderStatus, Review


class UserActivityService:
    """Read-only views over everything a user has bought and reviewed."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def stats(self, user_id: uuid.UUID) -> dict:
        """Order count, review count and total spent on completed orders."""
        orders_count = (
            await self.db.execute(
                select(func.count(Order.id)).where(Order.user_id == user_id)
            )
        ).scalar_one()
        reviews_count = (
            await self.db.execute(
                select(func.count(Review.id)).where(Review.user_id == user_id)
            )
        ).scalar_one()
        total_spent = (
            await self.db.execute(
                select(func.coalesce(func.sum(Order.total_amount), 0)).where(
                    Order.user_id == user_id,
                    Order.status == OrderStatus.COMPLETED.value,
                )
            )
        ).scalar_one()
        return {
            "orders_count": orders_count,
            "reviews_count": reviews_count,
            "total_spent": float(total_spent),
        }

    async def list_orders(
        self, user_id: uuid.UUID, *, page: int = 1, limit: int = 10
    ) -> tuple[list[Order], int]:
        """The user's orders, newest first. Returns (orders, total)."""
        q = (
            select(Order)
            .where(Order.user_id == user_id)
            .options(selectinload(Order.assistant), selectinload(Order.reviews))
            .order_by(Order.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        orders = list((await self.db.execute(q)).scalars().all())
        total = (
            await self.db.execute(
                select(func.count(Order.id)).where(Order.user_id == user_id)
            )
        ).scalar_one()
        return orders, total

    async def list_reviews(self, user_id: uuid.UUID) -> list[Review]:
        q = (
            select(Review)
            .where(Review.user_id == user_id)
            .options(selectinload(Review.assistant), selectinload(Review.order))
            .order_by(Review.created_at.desc())
        )
        return list((await self.db.execute(q)).scalars().all())
