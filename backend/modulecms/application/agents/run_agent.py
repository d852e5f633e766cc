import json
import logging
import re
import time
from typing import Any, Dict, List, Optional

import requests

from modulecms.application.exceptions import AgentError
from modulecms.application.posts.canonical import CANONICAL_FIELD_MAP
from modulecms.extensions import db
from modulecms.models.agent_execution import AgentExecution
from modulecms.models.post import Post
from modulecms.services import ai_provider_service, revision_service
from modulecms.services.agent_registry import agent_registry
from modulecms.services.module_resolution import STAGED_POST_FIELDS
from modulecms.utils.audit import log_action
from modulecms.utils.jsonb import coerce_json_object, deep_merge
from modulecms.utils.transaction import transactional

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{[\s\S]*\})\s*```")
_BARE_JSON = re.compile(r"(\{[\s\S]*\})")

RESPONSE_FORMAT = (
    "Respond with a single JSON object only. Shape:\n"
    '{"summary": "<one sentence>", '
    '"post": {"title"?: str, "slug"?: str, "excerpt"?: str, "metaTitle"?: str, "metaDescription"?: str}, '
    '"modules": [{"type": str, "orderIndex"?: int, "props": {...}}]}\n'
    "Only include fields you change."
)


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    """Pull the first JSON object out of a model reply, fenced or bare."""
    if not text:
        return None
    match = _FENCED_JSON.search(text) or _BARE_JSON.search(text)
    candidate = match.group(1) if match else text
    try:
        parsed = json.loads(candidate)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def normalize_suggestions(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Bring an agent reply into ``{"post": {...}, "modules": [...], "summary"}``.

    Replies that put post fields at the top level are wrapped.
    """
    data = dict(data or {})
    if "post" not in data:
        post_fields = {
            key: data.pop(key)
            for key in list(data)
            if key in CANONICAL_FIELD_MAP or key in STAGED_POST_FIELDS
        }
        if post_fields:
            data["post"] = post_fields
    data["post"] = coerce_json_object(data.get("post"))
    modules = data.get("modules")
    data["modules"] = [m for m in modules if isinstance(m, dict) and m.get("type")] if isinstance(modules, list) else []
    return data


def _to_columns(post_fields: Dict[str, Any]) -> Dict[str, Any]:
    """Map camelCase or snake_case post fields onto staged column names."""
    out = {}
    for key, value in post_fields.items():
        column = CANONICAL_FIELD_MAP.get(key, key)
        if column in STAGED_POST_FIELDS:
            out[column] = value
    return out


def _build_messages(agent: Dict[str, Any], payload: Dict[str, Any]) -> List[Dict[str, str]]:
    internal = agent["internal"]
    system_prompt = internal.get("system_prompt") or f"You are {agent.get('name', agent['id'])}."
    user_parts = ["Current post:", json.dumps(payload["post"], default=str, indent=2)]
    context = payload.get("context") or {}
    if context.get("openEndedContext"):
        user_parts += ["", "Instructions from the editor:", context["openEndedContext"]]
    return [
        {"role": "system", "content": f"{system_prompt}\n\n{RESPONSE_FORMAT}"},
        {"role": "user", "content": "\n".join(user_parts)},
    ]


def _call_external(agent: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
    url = agent_registry.webhook_url(agent["id"])
    if not url:
        raise AgentError("Agent webhook URL not configured", 400, {"agent_id": agent["id"]})

    external = agent.get("external") or {}
    headers = {"Content-Type": "application/json"}
    secret = external.get("secret")
    if secret:
        if external.get("secret_header"):
            headers[external["secret_header"]] = secret
        else:
            headers["Authorization"] = f"Bearer {secret}"

    try:
        response = requests.post(
            url,
            data=json.dumps(payload, default=str),
            headers=headers,
            timeout=agent_registry.timeout(agent["id"]),
        )
    except requests.Timeout as exc:
        raise AgentError("Agent request timed out", 408, {"agent_id": agent["id"]}) from exc
    except requests.RequestException as exc:
        raise AgentError(f"Agent request failed: {exc}", 400, {"agent_id": agent["id"]}) from exc

    if not response.ok:
        raise AgentError(
            f"Agent failed: {response.status_code} {response.text[:500]}",
            400,
            {"agent_id": agent["id"], "status_code": response.status_code},
        )
    try:
        body = response.json()
    except ValueError:
        body = {}
    return {"data": body if isinstance(body, dict) else {}, "raw": None, "usage": None}


def _call_internal(agent: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
    internal = agent["internal"]
    try:
        result = ai_provider_service.complete(
            provider=internal["provider"],
            model=internal["model"],
            messages=_build_messages(agent, payload),
            options=internal.get("options") or {},
            api_key=internal.get("api_key"),
            base_url=internal.get("base_url"),
        )
    except ai_provider_service.AIProviderError as exc:
        raise AgentError(str(exc), 400, {"agent_id": agent["id"]}) from exc

    content = result.get("content") or ""
    data = extract_json(content)
    if data is None:
        data = {"summary": content.strip()[:500]} if content.strip() else {}
    return {"data": data, "raw": content, "usage": result.get("usage")}


def _apply_module_suggestions(post: Post, suggestions: List[Dict[str, Any]]) -> List[str]:
    """
    Deep-merge suggested props into the ai-review layer.

    A suggestion without ``orderIndex`` applies to every module of its type.
    Local modules take it in ``ai_review_props``, global ones in
    ``ai_review_overrides``. Caller commits.
    """
    applied = []
    rows = sorted(post.post_modules, key=lambda pm: pm.order_index)
    for suggestion in suggestions:
        order_index = suggestion.get("orderIndex")
        matches = [
            pm for pm in rows
            if pm.module_instance.type == suggestion["type"]
            and (order_index is None or pm.order_index == order_index)
        ]
        if not matches:
            logger.warning("Agent suggestion matched no module: type=%s orderIndex=%s", suggestion["type"], order_index)
            continue

        props = coerce_json_object(suggestion.get("props"))
        for pm in matches:
            instance = pm.module_instance
            if instance.is_global:
                current = pm.ai_review_overrides if pm.ai_review_overrides is not None else pm.overrides
                pm.ai_review_overrides = deep_merge(coerce_json_object(current), props)
            else:
                current = deep_merge(instance.props, instance.ai_review_props)
                instance.ai_review_props = deep_merge(current, props)
        label = f"module.{suggestion['type']}"
        applied.append(label if order_index is None else f"{label}[{order_index}]")
    return applied


def _record_execution(
    *,
    agent_id: str,
    post_id: str,
    actor_id: Optional[str],
    view_mode: str,
    request_payload: Dict[str, Any],
    response_payload: Optional[Dict[str, Any]],
    started: float,
    error: Optional[str] = None,
) -> AgentExecution:
    execution = AgentExecution()
    execution.agent_id = agent_id
    execution.post_id = post_id
    execution.user_id = actor_id
    execution.scope = "dropdown"
    execution.view_mode = view_mode
    execution.request = request_payload
    execution.response = response_payload
    execution.success = error is None
    execution.error = error
    execution.duration_ms = int((time.monotonic() - started) * 1000)
    db.session.add(execution)
    return execution


def run_agent(
    *,
    post_id: str,
    agent_id: str,
    context: Optional[Dict[str, Any]] = None,
    open_ended_context: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Run a dropdown agent against a post and stage what it suggests.

    External agents receive the canonical post over their webhook and their
    ``post`` suggestions land in the review draft. Internal agents go
    through the AI provider; post fields land in the AI review draft and
    module props in the ai-review layer.
    """
    agent = agent_registry.get(agent_id)
    if agent is None:
        raise AgentError("Agent not found", 404, {"agent_id": agent_id})
    if not agent_registry.is_available_in_scope(agent_id, "dropdown"):
        raise AgentError("Agent not available for manual execution", 403, {"agent_id": agent_id})

    post = db.session.get(Post, post_id)
    if post is None:
        raise AgentError("Post not found", 404, {"post_id": post_id})

    context = dict(context or {})
    extra = open_ended_context.strip() if isinstance(open_ended_context, str) else ""
    if extra:
        settings = agent.get("open_ended_context") or {}
        if not settings.get("enabled"):
            raise AgentError("This agent does not accept open-ended context", 400, {"agent_id": agent_id})
        max_chars = settings.get("max_chars")
        if isinstance(max_chars, int) and max_chars > 0 and len(extra) > max_chars:
            raise AgentError(f"Open-ended context exceeds max_chars ({max_chars})", 400, {"max_chars": max_chars})
        context["openEndedContext"] = extra

    view_mode = context.get("viewMode") if context.get("viewMode") in ("review", "ai-review") else "publish"
    payload = {
        "agent": {"id": agent_id, "name": agent.get("name")},
        "post": revision_service.build_snapshot(post, view_mode),
        "context": context,
    }

    started = time.monotonic()
    target_mode = "review" if agent["type"] == "external" else "ai-review"
    try:
        if agent["type"] == "external":
            result = _call_external(agent, payload)
        else:
            result = _call_internal(agent, payload)
    except AgentError as exc:
        with transactional():
            _record_execution(
                agent_id=agent_id,
                post_id=post.id,
                actor_id=actor_id,
                view_mode=target_mode,
                request_payload=payload,
                response_payload=None,
                started=started,
                error=exc.message,
            )
        logger.warning("Agent %s failed for post %s: %s", agent_id, post.id, exc.message)
        raise

    suggestions = normalize_suggestions(result["data"])
    post_fields = _to_columns(suggestions["post"])
    applied = [f"post.{key}" for key in post_fields]

    with transactional():
        if target_mode == "review":
            post.review_draft = {**coerce_json_object(post.review_draft), **post_fields}
        else:
            base = coerce_json_object(post.review_draft) or {name: getattr(post, name) for name in STAGED_POST_FIELDS}
            post.ai_review_draft = {**base, **coerce_json_object(post.ai_review_draft), **post_fields}
            applied += _apply_module_suggestions(post, suggestions["modules"])

        _record_execution(
            agent_id=agent_id,
            post_id=post.id,
            actor_id=actor_id,
            view_mode=target_mode,
            request_payload=payload,
            response_payload={"data": suggestions, "usage": result["usage"]},
            started=started,
        )
        revision_service.record_revision(post, mode=target_mode, action=f"agent.{agent_id}", actor_id=actor_id)
        log_action(
            action="agent.run",
            entity_type="post",
            entity_id=post.id,
            payload={"agent_id": agent_id, "applied": applied},
            actor_id=actor_id,
        )

    body: Dict[str, Any] = {
        "message": f"Suggestions saved to {'review' if target_mode == 'review' else 'AI review'} draft",
        "applied": applied,
    }
    if suggestions.get("summary"):
        body["summary"] = suggestions["summary"]
    if result["raw"]:
        body["rawResponse"] = result["raw"]
    return body
