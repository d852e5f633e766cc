import copy
from typing import Any, Dict, List, Optional

AGENT_TYPES = ("external", "internal")

AGENT_SCOPES = (
    "dropdown",
    "field",
    "post.publish",
    "post.approve",
    "post.review.save",
    "post.review.approve",
    "post.ai-review.save",
    "post.ai-review.approve",
    "form.submit",
)

DEFAULT_SCOPE_ORDER = 100
DEFAULT_EXTERNAL_TIMEOUT = 30


class AgentRegistryError(ValueError):
    pass


class AgentRegistry:
    """
    Code-defined agents. External agents are called over a webhook,
    internal agents through an AI provider.
    """

    def __init__(self):
        self._agents: Dict[str, Dict[str, Any]] = {}

    def register(self, definition: Dict[str, Any]) -> None:
        agent_id = definition.get("id")
        if not agent_id:
            raise AgentRegistryError("Agent definition requires an id")
        if agent_id in self._agents:
            raise AgentRegistryError(f"Agent '{agent_id}' is already registered")

        agent_type = definition.get("type")
        if agent_type not in AGENT_TYPES:
            raise AgentRegistryError(f"Agent '{agent_id}' has unknown type '{agent_type}'")
        if agent_type == "external" and not isinstance(definition.get("external"), dict):
            raise AgentRegistryError(f"External agent '{agent_id}' requires an external config")
        if agent_type == "internal":
            internal = definition.get("internal")
            if not isinstance(internal, dict) or not internal.get("provider") or not internal.get("model"):
                raise AgentRegistryError(f"Internal agent '{agent_id}' requires a provider and model")

        for scope in definition.get("scopes") or []:
            if scope.get("scope") not in AGENT_SCOPES:
                raise AgentRegistryError(f"Agent '{agent_id}' uses unknown scope '{scope.get('scope')}'")

        self._agents[agent_id] = copy.deepcopy(definition)

    def get(self, agent_id: str) -> Optional[Dict[str, Any]]:
        return self._agents.get(agent_id)

    def has(self, agent_id: str) -> bool:
        return agent_id in self._agents

    def list(self) -> List[Dict[str, Any]]:
        return list(self._agents.values())

    def list_enabled(self) -> List[Dict[str, Any]]:
        return [agent for agent in self._agents.values() if agent.get("enabled", True)]

    @staticmethod
    def _scope_entry(agent: Dict[str, Any], scope: str) -> Optional[Dict[str, Any]]:
        for entry in agent.get("scopes") or []:
            if entry.get("scope") == scope and entry.get("enabled", True):
                return entry
        return None

    def list_by_scope(
        self,
        scope: str,
        form_slug: Optional[str] = None,
        field_key: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Enabled agents for ``scope``, ordered by the scope's ``order``."""
        matches = []
        for agent in self.list_enabled():
            entry = self._scope_entry(agent, scope)
            if entry is None:
                continue
            if form_slug and entry.get("form_slugs") and form_slug not in entry["form_slugs"]:
                continue
            if field_key and entry.get("field_keys") and field_key not in entry["field_keys"]:
                continue
            matches.append((entry.get("order", DEFAULT_SCOPE_ORDER), agent))
        matches.sort(key=lambda pair: pair[0])
        return [agent for _, agent in matches]

    def is_available_in_scope(self, agent_id: str, scope: str) -> bool:
        agent = self._agents.get(agent_id)
        if agent is None or not agent.get("enabled", True):
            return False
        return self._scope_entry(agent, scope) is not None

    def webhook_url(self, agent_id: str) -> Optional[str]:
        agent = self._agents.get(agent_id) or {}
        return (agent.get("external") or {}).get("url") or None

    def timeout(self, agent_id: str) -> float:
        agent = self._agents.get(agent_id) or {}
        return float((agent.get("external") or {}).get("timeout") or DEFAULT_EXTERNAL_TIMEOUT)

    def clear(self) -> None:
        self._agents.clear()


agent_registry = AgentRegistry()
