"""Shared view utilities for the JSON endpoints."""

import json

from django.http import HttpRequest


def get_username(request: HttpRequest) -> str:
    """Return the authenticated username, which doubles as the voter id."""
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        return ""
    return str(user.get_username() or "").strip()


def get_scope_param(request: HttpRequest) -> str | None:
    scope = str(request.GET.get("scope") or "").strip()
    return scope or None


def parse_json_object(request: HttpRequest) -> dict[str, object]:
    """Decode a JSON object request body; an empty body is an empty object."""
    try:
        raw = request.body.decode("utf-8") if request.body else "{}"
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError("Request body must be valid JSON.") from exc

    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object.")
    return data


def get_bool_param(request: HttpRequest, name: str) -> bool | None:
    raw = str(request.GET.get(name) or "").strip().lower()
    if not raw:
        return None
    if raw in {"true", "1"}:
        return True
    if raw in {"false", "0"}:
        return False
    raise ValueError(f"{name} must be true or false")
