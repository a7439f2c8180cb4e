"""Pydantic schemas for the assistant catalog."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from marketplace.schemas.common import CamelModel


class AssistantBrief(CamelModel):
    """Assistant summary embedded in orders and reviews."""
    id: uuid.UUID
    name: str
    slug: str
    category: str


class AssistantListItem(CamelModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str
    category: str
    pricing: list[dict[str, Any]] = Field(default_factory=list)
    demo_available: bool
    average_rating: Optional[float] = None
    total_orders: int = 0
    total_reviews: int = 0


class ReviewerRead(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class AssistantReviewRead(CamelModel):
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    user: ReviewerRead


class AssistantDetail(AssistantListItem):
    """Assistant with its latest reviews and rating aggregates."""
    voice_config: dict[str, Any] = Field(default_factory=dict)
    ai_model: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    reviews: list[AssistantReviewRead] = Field(default_factory=list)


class CategoryRead(CamelModel):
    name: str
    count: int


class DemoRequest(CamelModel):
    message: str = Field(..., min_length=1)
    voice: Optional[str] = None


class DemoResponse(CamelModel):
    assistant: str
    response: str
    timestamp: datetime
