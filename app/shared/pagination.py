"""Page/limit handling shared by list endpoints"""

import math

from pydantic import BaseModel

MAX_PAGE_LIMIT = 100


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


def build_pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def paginate(query, page: int, limit: int) -> tuple[list, dict]:
    """Apply offset/limit to a SQLAlchemy query; returns (rows, pagination)"""
    if page < 1:
        raise ValueError("page must be >= 1")
    if not 1 <= limit <= MAX_PAGE_LIMIT:
        raise ValueError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")

    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, build_pagination(page, limit, total)
