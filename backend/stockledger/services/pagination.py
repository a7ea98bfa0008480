# Overview: Shared 1-based pagination for listing queries.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..validation import MAX_INTEGER


@dataclass
class Page:
    items: list
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        # ceil(total / limit); an empty result has zero pages
        return (self.total + self.limit - 1) // self.limit


def paginate(query, page: int | None = None, limit: int | None = None) -> Page:
    """
    Apply offset/limit pagination to an ordered query.

    page is 1-based and clamped to [1, MAX_INTEGER]; limit defaults to
    DEFAULT_PAGE_SIZE and is capped at MAX_PAGE_SIZE.
    """
    default_limit = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 100)

    limit = min(limit or default_limit, max_limit)
    limit = max(limit, 1)
    # keeps the OFFSET within a 64-bit bind parameter
    page = min(max(page or 1, 1), MAX_INTEGER)

    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page(items=items, total=total, page=page, limit=limit)
