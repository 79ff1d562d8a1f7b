"""Utility modules."""

from charter_api.utils.pagination import (
    PaginatedResponse,
    PaginationParams,
    get_pagination,
)

__all__ = [
    "PaginatedResponse",
    "PaginationParams",
    "get_pagination",
]
