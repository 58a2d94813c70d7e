"""
Pagination utilities.
"""

from typing import Any

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def normalize_page(page: int, limit: int) -> tuple[int, int]:
    """
    Clamp page and limit to sane values.

    Args:
        page: Requested page (1-based)
        limit: Requested page size

    Returns:
        Tuple of (page, limit)
    """
    page = max(1, page or 1)
    limit = min(max(1, limit or DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)
    return page, limit


def page_offset(page: int, limit: int) -> int:
    """Rows to skip before a page."""
    return (page - 1) * limit


def paginated(
    items: list[Any], total: int, page: int, limit: int
) -> dict[str, Any]:
    """
    Build the list response envelope.

    Args:
        items: Items on this page
        total: Total matching rows
        page: Page number
        limit: Page size

    Returns:
        {"items": [...], "pagination": {page, limit, total, total_pages}}
    """
    total_pages = (total + limit - 1) // limit if limit else 0
    return {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
        },
    }
