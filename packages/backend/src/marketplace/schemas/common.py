"""Shared response shapes.

Learn: Every endpoint answers with the same envelope:

    {"success": true, "data": ..., "message": "..."}

List endpoints add a "meta" block with pagination info. Field names go
over the wire in camelCase (totalPages, firstName) while Python code
keeps snake_case; CamelModel handles the translation both ways.
"""

import math
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class PageMeta(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PageMeta":
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if limit else 0,
        )


class PaginatedResponse(CamelModel, Generic[T]):
    success: bool = True
    data: list[T]
    meta: PageMeta
