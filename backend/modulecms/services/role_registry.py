import copy
from typing import Any, Dict, List, Optional

ADMIN_ROLE_NAME = "admin"


class RoleRegistry:
    def __init__(self):
        self._roles: Dict[str, Dict[str, Any]] = {}

    def register(self, definition: Dict[str, Any]) -> None:
        name = definition.get("name")
        if not name:
            raise ValueError("Role definition requires a name")
        role = copy.deepcopy(definition)
        role["permissions"] = list(dict.fromkeys(role.get("permissions") or []))
        self._roles[name] = role

    def get(self, name: str) -> Optional[Dict[str, Any]]:
        return self._roles.get(name)

    def has(self, name: str) -> bool:
        return name in self._roles

    def list(self) -> List[Dict[str, Any]]:
        return list(self._roles.values())

    def permissions_for(self, name: Optional[str]) -> List[str]:
        role = self._roles.get(name or "")
        return list(role["permissions"]) if role else []

    def has_permission(self, role_name: Optional[str], permission: str) -> bool:
        if role_name == ADMIN_ROLE_NAME:
            return True
        return permission in self.permissions_for(role_name)

    def clear(self) -> None:
        self._roles.clear()


role_registry = RoleRegistry()
