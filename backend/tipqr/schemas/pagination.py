"""Pagination envelope shared by every list endpoint."""

from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tipqr.core.scoping import ListParams

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """``{data, page, pageSize, total}``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    data: List[T]
    page: int
    page_size: int
    total: int = Field(description="Total number of rows matching the query")

    @classmethod
    def create(cls, data: List[T], total: int, params: ListParams) -> "PaginatedResponse[T]":
        return cls(data=data, page=params.page, page_size=params.page_size, total=total)


def paginate_query(query, params: ListParams, order_by: Optional[list] = None) -> Tuple[list, int]:
    """Apply ordering and paging to a SQLAlchemy query.

    Returns:
        Tuple of (rows on the requested page, total count before paging)
    """
    total = query.order_by(None).count()
    if order_by:
        query = query.order_by(*order_by)
    rows = query.offset(params.offset).limit(params.page_size).all()
    return rows, total


def envelope(data: list, total: int, params: ListParams, **extra: Any) -> Dict[str, Any]:
    """Serialized envelope, with extra top-level keys such as ``summary``."""
    body = PaginatedResponse[Any].create(data, total, params).model_dump(by_alias=True)
    body.update(extra)
    return body
