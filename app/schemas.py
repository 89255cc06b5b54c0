"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

NOTE_MAX_LENGTH = 180

T = TypeVar("T")


class Reading(BaseModel):
    """A timestamped temperature sample with the threshold active at capture time."""

    id: int
    temperature: float
    threshold_value: Optional[float] = None
    recorded_at: datetime


class Threshold(BaseModel):
    """A user-configured alert temperature, versioned by creation time."""

    id: int
    value: float
    note: Optional[str] = Field(default=None, max_length=NOTE_MAX_LENGTH)
    created_at: datetime


class Pagination(BaseModel):
    """Page bookkeeping returned next to a paginated listing."""

    model_config = ConfigDict(populate_by_name=True)

    current_page: int = Field(..., ge=1, alias="currentPage")
    items_per_page: int = Field(..., ge=1, alias="itemsPerPage")
    total_items: int = Field(..., ge=0, alias="totalItems")
    total_pages: int = Field(..., ge=0, alias="totalPages")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            current_page=page,
            items_per_page=limit,
            total_items=total,
            total_pages=math.ceil(total / limit),
        )


class Page(BaseModel, Generic[T]):
    data: List[T] = Field(default_factory=list)
    pagination: Pagination


class ErrorResponse(BaseModel):
    error: str
