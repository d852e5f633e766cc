import copy
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from modulecms.domain.invariants.exceptions import InvariantViolation

_LOCALE_KEY = re.compile(r"^[a-z]{2}(-[a-z]{2})?$", re.IGNORECASE)


@dataclass
class ModuleConfig:
    type: str
    name: str
    description: str = ""
    icon: Optional[str] = None
    allowed_scopes: List[str] = field(default_factory=lambda: ["local", "global"])
    lockable: bool = True
    field_schema: List[Dict[str, Any]] = field(default_factory=list)
    default_props: Dict[str, Any] = field(default_factory=dict)
    # Empty means available to every post type
    allowed_post_types: List[str] = field(default_factory=list)


class BaseModule:
    """
    Base class for content modules.

    Subclasses provide ``config``; everything else has a usable default.
    """

    rendering_mode = "static"

    @property
    def config(self) -> ModuleConfig:
        raise NotImplementedError

    @property
    def type(self) -> str:
        return self.config.type

    def validate(self, props: Dict[str, Any]) -> bool:
        for spec in self.config.field_schema:
            if spec.get("required") and spec.get("slug") not in (props or {}):
                raise InvariantViolation(
                    f"Missing required field '{spec['slug']}' for module '{self.type}'"
                )
        return True

    def merge_props(self, base: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Shallow merge: override keys replace base keys wholesale."""
        merged = dict(base or {})
        if overrides:
            merged.update(overrides)
        return merged

    def localize_props(self, props: Dict[str, Any], locale: str, fallback: str = "en") -> Dict[str, Any]:
        localized: Dict[str, Any] = {}
        for key, value in (props or {}).items():
            if self._is_localized_value(value):
                localized[key] = value.get(locale) or value.get(fallback) or None
            elif isinstance(value, dict):
                localized[key] = self.localize_props(value, locale, fallback)
            else:
                localized[key] = value
        return localized

    def default_props(self) -> Dict[str, Any]:
        return copy.deepcopy(self.config.default_props)

    def schema(self) -> Dict[str, Any]:
        cfg = self.config
        return {
            "type": cfg.type,
            "name": cfg.name,
            "description": cfg.description,
            "icon": cfg.icon,
            "allowedScopes": list(cfg.allowed_scopes),
            "lockable": cfg.lockable,
            "fieldSchema": copy.deepcopy(cfg.field_schema),
            "defaultProps": self.default_props(),
            "allowedPostTypes": list(cfg.allowed_post_types),
            "renderingMode": self.rendering_mode,
        }

    @staticmethod
    def _is_localized_value(value: Any) -> bool:
        # {"en": "...", "es": "..."} with string leaves only
        if not isinstance(value, dict) or not value:
            return False
        return all(
            isinstance(k, str) and _LOCALE_KEY.match(k) and isinstance(v, str)
            for k, v in value.items()
        )
