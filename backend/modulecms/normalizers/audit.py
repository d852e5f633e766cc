from typing import Any, Dict, Mapping, Optional

from modulecms.models.audit_log import AuditLog
from modulecms.models.user import User


def normalize_audit_log(log: AuditLog, actors: Optional[Mapping[str, User]] = None) -> Dict[str, Any]:
    """
    ``actors`` maps user ids to users already loaded for the page, so each
    entry can name who acted without a query per row.
    """
    if not log:
        raise ValueError("AuditLog cannot be None")

    actor = (actors or {}).get(log.actor_id) if log.actor_id else None
    return {
        "id": log.id,
        "actor_id": log.actor_id,
        "actor": {"email": actor.email, "name": actor.display_name} if actor else None,
        "action": log.action,
        "entity_type": log.entity_type,
        "entity_id": str(log.entity_id) if log.entity_id is not None else None,
        "payload": log.payload or {},
        "created_at": log.created_at.isoformat(),
    }
