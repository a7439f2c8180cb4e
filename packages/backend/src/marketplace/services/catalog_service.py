"""Catalog service — browsing assistants, categories and demos.

Learn: Rating and order aggregates are computed in SQL with correlated
subqueries, so a page of assistants costs two queries (page + count)
no matter how many reviews exist.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.db.models import Assistant, Order, Review
from marketplace.errors import NotFoundError, ValidationFailedError

logger = structlog.get_logger()

LATEST_REVIEWS = 10


class RatedAssistant:
    """An Assistant row plus its rating/order aggregates.

    Attribute access falls through to the wrapped row, so response
    schemas can read it like the ORM object itself.
    """

    def __init__(
        self,
        assistant: Assistant,
        average_rating: Optional[float],
        total_orders: int,
        total_reviews: int,
        reviews: Optional[list[Review]] = None,
    ):
        self.assistant = assistant
        self.average_rating = float(average_rating) if average_rating is not None else None
        self.total_orders = total_orders or 0
        self.total_reviews = total_reviews or 0
        self.reviews = reviews or []

    def __getattr__(self, name: str) -> Any:
        return getattr(self.assistant, name)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _aggregate_columns():
    """Correlated subqueries: average rating, order count, review count."""
    avg_rating = (
        select(func.avg(Review.rating))
        .where(Review.assistant_id == Assistant.id)
        .correlate(Assistant)
        .scalar_subquery()
    )
    total_orders = (
        select(func.count(Order.id))
        .where(Order.assistant_id == Assistant.id)
        .correlate(Assistant)
        .scalar_subquery()
    )
    total_reviews = (
        select(func.count(Review.id))
        .where(Review.assistant_id == Assistant.id)
        .correlate(Assistant)
        .scalar_subquery()
    )
    return avg_rating, total_orders, total_reviews


class CatalogService:
    """Read side of the marketplace catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_assistants(
        self,
        *,
        page: int = 1,
        limit: int = 12,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[RatedAssistant], int]:
        """Active assistants, newest first, with aggregates. Returns (items, total)."""
        filters = [Assistant.is_active.is_(True)]
        if category:
            filters.append(Assistant.category == category)
        if search:
            pattern = f"%{_escape_like(search)}%"
            filters.append(
                or_(
                    Assistant.name.ilike(pattern, escape="\\"),
                    Assistant.description.ilike(pattern, escape="\\"),
                )
            )

        avg_rating, total_orders, total_reviews = _aggregate_columns()
        q = (
            select(Assistant, avg_rating, total_orders, total_reviews)
            .where(*filters)
            .order_by(Assistant.created_at.desc(), Assistant.name)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = (await self.db.execute(q)).all()

        count_q = select(func.count(Assistant.id)).where(*filters)
        total = (await self.db.execute(count_q)).scalar_one()

        return [RatedAssistant(*row) for row in rows], total

    async def list_categories(self) -> list[dict[str, Any]]:
        """Categories of active assistants with how many assistants each has."""
        q = (
            select(Assistant.category, func.count(Assistant.id))
            .where(Assistant.is_active.is_(True))
            .group_by(Assistant.category)
            .order_by(Assistant.category)
        )
        rows = (await self.db.execute(q)).all()
        return [{"name": name, "count": count} for name, count in rows]

    async def get_assistant(self, slug: str) -> RatedAssistant:
        """Active assistant by slug, with aggregates and its latest reviews."""
        avg_rating, total_orders, total_reviews = _aggregate_columns()
        q = select(Assistant, avg_rating, total_orders, total_reviews).where(
            Assistant.slug == slug, Assistant.is_active.is_(True)
        )
        row = (await self.db.execute(q)).first()
        if not row:
            raise NotFoundError("Assistant")

        assistant = row[0]
        reviews_q = (
            select(Review)
            .where(Review.assistant_id == assistant.id)
            .options(selectinload(Review.user))
            .order_by(Review.created_at.desc())
            .limit(LATEST_REVIEWS)
        )
        reviews = list((await self.db.execute(reviews_q)).scalars().all())
        return RatedAssistant(*row, reviews=reviews)

    async def demo(
        self, slug: str, message: str, *, max_length: int = 500
    ) -> dict[str, Any]:
        """Canned demo reply.

        TODO: route the message through the assistant's ai_model once the
        AI provider integration lands.
        """
        if not message.strip() or len(message) > max_length:
            raise ValidationFailedError(
                f"Message is required and must be less than {max_length} characters"
            )

        q = select(Assistant).where(
            Assistant.slug == slug,
            Assistant.is_active.is_(True),
            Assistant.demo_available.is_(True),
        )
        assistant = (await self.db.execute(q)).scalars().first()
        if not assistant:
            raise NotFoundError(message="Assistant not found or demo not available")

        logger.info("catalog.demo", assistant=assistant.slug, length=len(message))
        return {
            "assistant": assistant.name,
            "response": (
                f"Hello! I'm {assistant.name}, your {assistant.category} assistant. "
                f'I received your message: "{message}". This is a demo response.'
            ),
            "timestamp": datetime.now(timezone.utc),
        }
