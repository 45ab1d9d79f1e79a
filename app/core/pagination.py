"""Pagination and sort helpers for list endpoints."""

from typing import Literal


def paginate(limit: int, offset: int, max_limit: int = 200) -> tuple[int, int]:
    """Clamp limit/offset; return (limit, offset)."""
    limit = max(1, min(limit, max_limit))
    offset = max(0, offset)
    return limit, offset


def sort_spec(
    sort_by: str | None,
    sort_order: str | None,
    allowed: tuple[str, ...],
    default: str = "created_at",
) -> tuple[str, Literal[1, -1]]:
    """Return (field, direction); unknown fields fall back to default, anything but "asc" sorts descending."""
    field = sort_by if sort_by in allowed else default
    return field, 1 if sort_order == "asc" else -1
