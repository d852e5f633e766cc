import logging
from typing import Optional
from flask import g, has_request_context
from sqlalchemy.exc import SQLAlchemyError
from modulecms.extensions import db
from modulecms.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def log_action(
    *,
    action: str,
    entity_type: str,
    entity_id: Optional[str],
    payload: dict | None = None,
    actor_id: Optional[str] = None,
):
    """
    Add an activity row to the current session.

    Never blocks the primary operation: failures are logged and dropped.
    """
    if actor_id is None and has_request_context():
        current_user = getattr(g, "current_user", None)
        actor_id = current_user.id if current_user is not None else None

    try:
        log = AuditLog()
        log.actor_id = actor_id
        log.action = action
        log.entity_type = entity_type
        log.entity_id = str(entity_id) if entity_id is not None else "*"
        log.payload = payload or {}

        db.session.add(log)
    except SQLAlchemyError as exc:
        logger.warning("Failed to record activity %s for %s: %s", action, entity_id, exc)
