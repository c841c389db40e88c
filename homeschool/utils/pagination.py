# homeschool/utils/pagination.py
"""Pagination utilities for consistent API responses."""
from typing import Any, Dict, List
from pydantic import BaseModel, Field
from fastapi import Query
from math import ceil

from ..core.config import settings
from .responses import serialize

class PaginationParams(BaseModel):
    """Standard pagination parameters."""
    page: int = Field(1, ge=1, description="Page number (starts from 1)")
    limit: int = Field(20, ge=1, le=100, description="Items per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

class PaginationMeta(BaseModel):
    """Pagination metadata."""
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

class Paginator:
    """Pagination utility class."""

    @staticmethod
    def get_pagination_params(
        page: int = Query(1, ge=1, description="Page number"),
        limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page")
    ) -> PaginationParams:
        """FastAPI dependency for pagination parameters."""
        return PaginationParams(page=page, limit=limit)

    @staticmethod
    def create_meta(page: int, limit: int, total: int) -> PaginationMeta:
        """Create pagination metadata."""
        total_pages = ceil(total / limit) if limit > 0 else 0
        return PaginationMeta(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1
        )

    @staticmethod
    def create_response(items: List[Any], page: int, limit: int, total: int) -> Dict[str, Any]:
        """Envelope one page of items with its metadata."""
        meta = Paginator.create_meta(page, limit, total)
        return {"success": True, "data": serialize(items), "meta": meta.model_dump()}
