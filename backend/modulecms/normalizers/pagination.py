from typing import Any, Callable, Dict, List, Optional

from modulecms.utils.pagination import CursorMeta, OffsetMeta


def normalize_pagination(
    items: List[Any],
    normalize_fn: Callable[[Any], Dict[str, Any]],
    *,
    cursor: Optional[CursorMeta] = None,
    offset: Optional[OffsetMeta] = None,
) -> Dict[str, Any]:
    """
    Shape a listing as ``{"items", "pagination"?}``.

    Pass exactly one of ``cursor`` or ``offset``.
    """
    response: Dict[str, Any] = {"items": [normalize_fn(item) for item in items]}

    if cursor is not None:
        response["pagination"] = {
            "has_more": cursor["has_more"],
            "next_cursor": cursor["next_cursor"],
            "prev_cursor": cursor["prev_cursor"],
        }
        return response

    if offset is not None:
        per_page = offset["per_page"]
        response["pagination"] = {
            "page": offset["page"],
            "per_page": per_page,
            "total": offset["total"],
            "total_pages": (offset["total"] + per_page - 1) // per_page,
        }

    return response
