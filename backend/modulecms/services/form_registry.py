import copy
from typing import Any, Dict, List, Optional


class FormRegistry:
    """Code-first public forms keyed by slug."""

    def __init__(self):
        self._forms: Dict[str, Dict[str, Any]] = {}

    def register(self, config: Dict[str, Any]) -> None:
        slug = str(config.get("slug") or "").strip()
        if not slug:
            raise ValueError("Form config requires a slug")
        self._forms[slug] = copy.deepcopy(config)

    def get(self, slug: str) -> Optional[Dict[str, Any]]:
        return self._forms.get(slug)

    def has(self, slug: str) -> bool:
        return slug in self._forms

    def list(self) -> List[Dict[str, Any]]:
        return list(self._forms.values())

    def clear(self) -> None:
        self._forms.clear()


form_registry = FormRegistry()
