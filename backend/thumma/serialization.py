# Overview: The single naming boundary between the camelCase API and snake_case storage.

"""
Persisted columns and every model's to_dict() are snake_case. API clients
send and receive camelCase. Both directions are translated here and only
here: routes call `read_json()` on the way in and `camel_response()` on the
way out.
"""

from __future__ import annotations

import re
from typing import Any

from flask import jsonify, request

from .errors import ValidationError

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Keys that are data, not field names (localized strings, widget maps).
_OPAQUE_KEYS = {"name", "description", "store_name", "address", "phone", "tax_id", "dashboard_widget_visibility", "settings"}


def to_camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def camelize(value: Any) -> Any:
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            if not isinstance(k, str):
                out[k] = v
                continue
            out[to_camel(k)] = v if k in _OPAQUE_KEYS else camelize(v)
        return out
    if isinstance(value, list):
        return [camelize(v) for v in value]
    return value


def snakify(value: Any) -> Any:
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            if not isinstance(k, str):
                out[k] = v
                continue
            key = to_snake(k)
            out[key] = v if key in _OPAQUE_KEYS else snakify(v)
        return out
    if isinstance(value, list):
        return [snakify(v) for v in value]
    return value


def read_json() -> dict:
    """Request body as a snake_case dict."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return snakify(data)


def camel_response(payload: Any, status: int = 200):
    return jsonify(camelize(payload)), status
