"""Pydantic schemas for orders, transactions and reviews."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from marketplace.schemas.assistant import AssistantBrief
from marketplace.schemas.common import CamelModel


# ─── Requests ────────────────────────────────────────────


class OrderItem(CamelModel):
    service_type: str = Field(..., min_length=1, max_length=100)
    details: dict[str, Any] = Field(default_factory=dict)
    quantity: Optional[int] = Field(None, ge=1)


class OrderCreate(CamelModel):
    assistant_id: uuid.UUID
    service_details: list[OrderItem] = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=2000)


class ReviewCreate(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


# ─── Responses ───────────────────────────────────────────


class TransactionRead(CamelModel):
    id: uuid.UUID
    type: str
    amount: float
    currency: str
    description: str
    created_at: datetime


class OrderReviewRead(CamelModel):
    id: uuid.UUID
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class OrderRead(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    assistant_id: uuid.UUID
    status: str
    service_details: list[dict[str, Any]] = Field(default_factory=list)
    total_amount: float
    currency: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    assistant: AssistantBrief


class OrderWithReviews(OrderRead):
    reviews: list[OrderReviewRead] = Field(default_factory=list)


class OrderDetail(OrderWithReviews):
    transactions: list[TransactionRead] = Field(default_factory=list)


class OrderBrief(CamelModel):
    id: uuid.UUID
    total_amount: float
    created_at: datetime


class ReviewRead(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    assistant_id: uuid.UUID
    order_id: uuid.UUID
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    assistant: AssistantBrief


class UserReviewRead(ReviewRead):
    order: OrderBrief


class UserStats(CamelModel):
    orders_count: int
    reviews_count: int
    total_spent: float
