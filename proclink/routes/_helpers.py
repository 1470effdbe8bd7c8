from __future__ import annotations

from typing import Any, Dict

from flask import current_app, request

from proclink.application.services import Services


def services() -> Services:
    return current_app.extensions["proclink"]


def json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def parse_int(value: str | None, default: int, min_value: int, max_value: int) -> int:
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return max(min_value, min(parsed, max_value))


def clean(value: Any) -> str:
    return str(value or "").strip()
