from modulecms.services.role_registry import role_registry


def normalize_user(user, with_permissions=False):
    data = {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "display_name": user.display_name,
        "role": user.role,
        "is_active": bool(user.is_active),
        "last_login_at": user.last_login_at.isoformat() if user.last_login_at else None,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }
    if with_permissions:
        data["permissions"] = role_registry.permissions_for(user.role)
    return data
