from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Tuple, Type, TypedDict

from flask import request
from sqlalchemy.orm import Query
from sqlalchemy.sql import and_, or_
from werkzeug.exceptions import BadRequest


class CursorMeta(TypedDict):
    """Cursor pagination metadata shared by every cursor-paginated listing."""
    has_more: bool
    next_cursor: Optional[str]
    prev_cursor: Optional[str]


class OffsetMeta(TypedDict):
    page: int
    per_page: int
    total: int


def encode_cursor(created_at: datetime, row_id: Any) -> str:
    """
    Encode a cursor as ``<ISO8601>|<id>``.
    """
    if not isinstance(created_at, datetime) or row_id is None:
        raise ValueError("created_at and row_id are required to encode cursor")

    return f"{created_at.isoformat()}|{row_id}"


def decode_cursor(cursor: str) -> Tuple[datetime, str]:
    if not cursor or "|" not in cursor:
        raise BadRequest("Invalid cursor format")

    ts_str, row_id = cursor.split("|", 1)
    try:
        return datetime.fromisoformat(ts_str), row_id
    except ValueError as exc:
        raise BadRequest("Invalid cursor format") from exc


def apply_cursor(
    query: Query,
    *,
    model: Type[Any],
    cursor: Optional[str],
    direction: str = "next",
) -> Query:
    """
    Filter ``query`` to the rows after (``next``) or before (``prev``) a cursor.

    Callers must order by ``created_at DESC, id DESC``; ``paginate_cursor``
    applies that ordering.
    """
    if not cursor:
        return query

    cursor_ts, cursor_id = decode_cursor(cursor)

    if direction == "next":
        return query.filter(
            or_(
                model.created_at < cursor_ts,
                and_(model.created_at == cursor_ts, model.id < cursor_id),
            )
        )

    if direction == "prev":
        return query.filter(
            or_(
                model.created_at > cursor_ts,
                and_(model.created_at == cursor_ts, model.id > cursor_id),
            )
        )

    raise BadRequest("Invalid pagination direction")


def paginate_cursor(
    query: Query,
    *,
    model: Type[Any],
    limit: int,
    direction: str = "next",
) -> tuple[list[Any], CursorMeta]:
    """Fetch ``limit + 1`` rows to detect continuation, then trim."""
    if limit <= 0:
        raise BadRequest("Limit must be greater than zero")

    rows = (
        query.order_by(model.created_at.desc(), model.id.desc())
        .limit(limit + 1)
        .all()
    )

    has_more = len(rows) > limit
    items = rows[:limit]

    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None

    if items:
        if direction == "next" and has_more:
            next_cursor = encode_cursor(items[-1].created_at, items[-1].id)
        if direction == "prev":
            prev_cursor = encode_cursor(items[0].created_at, items[0].id)

    return items, {
        "has_more": has_more,
        "next_cursor": next_cursor,
        "prev_cursor": prev_cursor,
    }


def paginate_offset(query: Query, *, page: int, per_page: int) -> tuple[list[Any], OffsetMeta]:
    """Classic page/per_page pagination for admin listings. Ordering is the caller's."""
    if page < 1 or per_page < 1:
        raise BadRequest("page and per_page must be positive")

    total = query.order_by(None).count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    return items, {"page": page, "per_page": per_page, "total": total}


def read_page_args(default_per_page: int = 20, max_per_page: int = 100) -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", 1))
        per_page = int(request.args.get("per_page", default_per_page))
    except ValueError as exc:
        raise BadRequest("page and per_page must be integers") from exc
    return page, min(per_page, max_per_page)
