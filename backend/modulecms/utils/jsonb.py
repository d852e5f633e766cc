import copy
import json
from typing import Any, Dict, Optional


def coerce_json_object(value: Any) -> Dict[str, Any]:
    """Return ``value`` as a dict; JSON strings are parsed, anything else yields {}."""
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def deep_merge(base: Optional[Dict[str, Any]], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Merge ``override`` onto ``base`` without mutating either.

    Nested objects merge recursively; arrays and primitives are replaced.
    """
    out = copy.deepcopy(base) if isinstance(base, dict) else {}
    if not isinstance(override, dict):
        return out

    for key, o_val in override.items():
        b_val = out.get(key)
        if isinstance(o_val, dict) and isinstance(b_val, dict):
            out[key] = deep_merge(b_val, o_val)
        else:
            out[key] = copy.deepcopy(o_val)
    return out


def shallow_merge(*layers: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for layer in layers:
        if isinstance(layer, dict):
            out.update(copy.deepcopy(layer))
    return out


def replace_in_json(value: Any, old: str, new: str) -> Any:
    """Replace every occurrence of ``old`` inside string leaves of a JSON value."""
    if isinstance(value, str):
        return value.replace(old, new)
    if isinstance(value, list):
        return [replace_in_json(v, old, new) for v in value]
    if isinstance(value, dict):
        return {k: replace_in_json(v, old, new) for k, v in value.items()}
    return value
