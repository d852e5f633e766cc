from datetime import timezone

from dateutil.parser import parse
from flask import abort, request


def normalize_ts(ts):
    """Treat naive datetimes as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def enforce_optimistic_lock(entity):
    """
    Compare ``entity.updated_at`` with the If-Unmodified-Since header.

    Aborts with 409 when the entity changed after the client's copy. No
    header means no lock was requested.
    """
    client_ts = request.headers.get("If-Unmodified-Since")
    if not client_ts:
        return

    try:
        client_ts = normalize_ts(parse(client_ts))
    except (ValueError, OverflowError):
        abort(400, description="Invalid If-Unmodified-Since header")

    if entity.updated_at is None:
        return

    # HTTP dates carry second precision
    server_ts = normalize_ts(entity.updated_at).replace(microsecond=0)

    if server_ts > client_ts:
        abort(409, description="Conflict detected. Resource has been modified.")
