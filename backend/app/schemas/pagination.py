"""Pagination schemas and utilities."""

from typing import Generic, List, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Page of documents plus the total matching the filters."""

    items: List[T]
    total: int = Field(description="Total number of items matching the query")
    skip: int = Field(description="Number of items skipped")
    limit: int = Field(description="Maximum items requested")
    has_more: bool = Field(description="Whether more items are available")

    @classmethod
    def create(cls, items: List[T], total: int, skip: int, limit: int) -> "PaginatedResponse[T]":
        return cls(
            items=items,
            total=total,
            skip=skip,
            limit=limit,
            has_more=(skip + len(items)) < total,
        )


def paginate_query(query, skip: int = 0, limit: int = 20):
    """Apply offset/limit to an ORM query; returns (items, total before paging)."""
    total = query.order_by(None).count()
    items = query.offset(skip).limit(limit).all()
    return items, total
