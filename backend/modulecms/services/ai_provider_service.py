import logging
import os
from typing import Any, Dict, List, Optional

import requests
from flask import current_app

logger = logging.getLogger(__name__)

AI_PROVIDERS = ("openai", "anthropic", "google")

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
GOOGLE_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

DEFAULT_TIMEOUT = 60


class AIProviderError(RuntimeError):
    pass


def api_key_for(provider: str, explicit: Optional[str] = None) -> str:
    """``explicit`` wins, then ``AI_PROVIDER_<NAME>_API_KEY`` from config or environment."""
    if explicit:
        return explicit
    name = f"AI_PROVIDER_{provider.upper()}_API_KEY"
    key = current_app.config.get(name) or os.getenv(name)
    if not key:
        raise AIProviderError(f"No API key configured for provider '{provider}' ({name})")
    return key


def _split_system(messages: List[Dict[str, str]]):
    system = "\n\n".join(m["content"] for m in messages if m.get("role") == "system")
    rest = [m for m in messages if m.get("role") != "system"]
    return system or None, rest


def _openai(model, messages, options, api_key, base_url, timeout) -> Dict[str, Any]:
    body: Dict[str, Any] = {"model": model, "messages": messages}
    if "temperature" in options:
        body["temperature"] = options["temperature"]
    if options.get("max_tokens"):
        body["max_tokens"] = options["max_tokens"]
    if "top_p" in options:
        body["top_p"] = options["top_p"]
    if options.get("stop"):
        body["stop"] = options["stop"]

    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    resp = requests.post(base_url or OPENAI_URL, headers=headers, json=body, timeout=timeout)
    resp.raise_for_status()
    data = resp.json()
    choice = (data.get("choices") or [{}])[0]
    return {
        "content": (choice.get("message") or {}).get("content") or "",
        "usage": data.get("usage"),
        "model": data.get("model", model),
    }


def _anthropic(model, messages, options, api_key, base_url, timeout) -> Dict[str, Any]:
    system, rest = _split_system(messages)
    body: Dict[str, Any] = {
        "model": model,
        "max_tokens": options.get("max_tokens") or 4096,
        "messages": [{"role": m["role"], "content": m["content"]} for m in rest],
    }
    if system:
        body["system"] = system
    if "temperature" in options:
        body["temperature"] = options["temperature"]
    if "top_p" in options:
        body["top_p"] = options["top_p"]
    if options.get("stop"):
        body["stop_sequences"] = options["stop"]

    headers = {
        "x-api-key": api_key,
        "anthropic-version": ANTHROPIC_VERSION,
        "Content-Type": "application/json",
    }
    resp = requests.post(base_url or ANTHROPIC_URL, headers=headers, json=body, timeout=timeout)
    resp.raise_for_status()
    data = resp.json()
    blocks = [b for b in data.get("content") or [] if b.get("type") == "text"]
    if not blocks:
        raise AIProviderError("Anthropic returned non-text response")
    return {
        "content": "".join(b.get("text", "") for b in blocks),
        "usage": data.get("usage"),
        "model": data.get("model", model),
    }


def _google(model, messages, options, api_key, base_url, timeout) -> Dict[str, Any]:
    system, rest = _split_system(messages)
    body: Dict[str, Any] = {
        "contents": [
            {
                "role": "model" if m["role"] == "assistant" else "user",
                "parts": [{"text": m["content"]}],
            }
            for m in rest
        ],
    }
    if system:
        body["systemInstruction"] = {"parts": [{"text": system}]}
    generation: Dict[str, Any] = {}
    if "temperature" in options:
        generation["temperature"] = options["temperature"]
    if options.get("max_tokens"):
        generation["maxOutputTokens"] = options["max_tokens"]
    if "top_p" in options:
        generation["topP"] = options["top_p"]
    if generation:
        body["generationConfig"] = generation

    url = base_url or GOOGLE_URL.format(model=model)
    resp = requests.post(url, params={"key": api_key}, json=body, timeout=timeout)
    resp.raise_for_status()
    data = resp.json()
    candidate = (data.get("candidates") or [{}])[0]
    parts = (candidate.get("content") or {}).get("parts") or []
    return {
        "content": "".join(p.get("text", "") for p in parts),
        "usage": data.get("usageMetadata"),
        "model": model,
    }


_DISPATCH = {
    "openai": _openai,
    "anthropic": _anthropic,
    "google": _google,
}


def complete(
    *,
    provider: str,
    model: str,
    messages: List[Dict[str, str]],
    options: Optional[Dict[str, Any]] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Dict[str, Any]:
    """
    Run one chat completion and return ``{"content", "usage", "model"}``.

    ``messages`` use the ``{"role": "system"|"user"|"assistant", "content"}``
    shape for every provider; system messages are moved to the provider's
    dedicated field where it has one.
    """
    handler = _DISPATCH.get(provider)
    if handler is None:
        raise AIProviderError(f"Unsupported AI provider '{provider}'")

    key = api_key_for(provider, api_key)
    try:
        return handler(model, messages, options or {}, key, base_url, timeout)
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else None
        logger.warning("AI provider %s returned HTTP %s", provider, status)
        raise AIProviderError(f"{provider} request failed with HTTP {status}") from exc
    except requests.RequestException as exc:
        logger.warning("AI provider %s request failed: %s", provider, exc)
        raise AIProviderError(f"{provider} request failed: {exc}") from exc
