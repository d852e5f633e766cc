import copy
from typing import Any, Dict, Iterator, List, Optional, Tuple


class PostTypeRegistry:
    """Code-defined post types keyed by their ``type`` slug."""

    def __init__(self):
        self._types: Dict[str, Dict[str, Any]] = {}

    def register(self, config: Dict[str, Any]) -> None:
        post_type = config.get("type")
        if not post_type:
            raise ValueError("Post type config requires a type")
        self._types[post_type] = copy.deepcopy(config)

    def get(self, post_type: str) -> Optional[Dict[str, Any]]:
        return self._types.get(post_type)

    def has(self, post_type: str) -> bool:
        return post_type in self._types

    def types(self) -> List[str]:
        return list(self._types.keys())

    def entries(self) -> Iterator[Tuple[str, Dict[str, Any]]]:
        return iter(self._types.items())

    def default_group_name(self, post_type: str) -> str:
        cfg = self._types.get(post_type) or {}
        group = cfg.get("module_group") or {}
        return group.get("name") or f"{post_type}-default"

    def hierarchy_enabled(self, post_type: str) -> bool:
        return bool((self._types.get(post_type) or {}).get("hierarchy_enabled", False))

    def clear(self) -> None:
        self._types.clear()


post_type_registry = PostTypeRegistry()
