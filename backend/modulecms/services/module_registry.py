from typing import Any, Dict, List

from modulecms.modules.base import BaseModule, ModuleConfig


class ModuleRegistryError(LookupError):
    pass


class ModuleRegistry:
    """
    Central registry of the content modules available to posts.

    Populated once at application start from code-defined modules.
    """

    def __init__(self):
        self._modules: Dict[str, BaseModule] = {}

    def register(self, module: BaseModule) -> None:
        module_type = module.config.type
        if module_type in self._modules:
            raise ModuleRegistryError(f"Module type '{module_type}' is already registered")
        self._modules[module_type] = module

    def get(self, module_type: str) -> BaseModule:
        module = self._modules.get(module_type)
        if module is None:
            raise ModuleRegistryError(f"Module type '{module_type}' is not registered")
        return module

    def has(self, module_type: str) -> bool:
        return module_type in self._modules

    def types(self) -> List[str]:
        return list(self._modules.keys())

    def all_configs(self) -> List[ModuleConfig]:
        return [module.config for module in self._modules.values()]

    def modules_for_post_type(self, post_type: str) -> List[ModuleConfig]:
        """Configs whose own allowed_post_types admit ``post_type``. Restrictions are not applied here."""
        return [
            cfg for cfg in self.all_configs()
            if not cfg.allowed_post_types or post_type in cfg.allowed_post_types
        ]

    def schema(self, module_type: str) -> Dict[str, Any]:
        return self.get(module_type).schema()

    def all_schemas(self) -> List[Dict[str, Any]]:
        return [self.schema(t) for t in self.types()]

    def clear(self) -> None:
        self._modules.clear()

    def count(self) -> int:
        return len(self._modules)


module_registry = ModuleRegistry()
