from typing import Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class PaginationMeta(BaseModel):
    """Pagination metadata"""
    total: int
    limit: int
    offset: int
    has_more: bool

    @property
    def page(self) -> int:
        """Current page number (1-indexed)"""
        if self.limit == 0:
            return 1
        return (self.offset // self.limit) + 1


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response wrapper"""
    items: list[T]
    pagination: PaginationMeta


def paginate(query, to_out, *, limit: int, offset: int, include_pagination: bool):
    """Run a list query the way every list endpoint does: count, slice, convert."""
    total = query.count()
    items = [to_out(row) for row in query.offset(offset).limit(limit).all()]
    if include_pagination:
        return PaginatedResponse(
            items=items,
            pagination=PaginationMeta(
                total=total,
                limit=limit,
                offset=offset,
                has_more=(offset + len(items) < total),
            ),
        )
    return items
