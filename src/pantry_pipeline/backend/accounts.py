"""Opaque account calls: login, signup and profile lookup."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..errors import AuthenticationError, GatewayError, TransportFailure, UploadFailure
from ..logging import get_logger
from .client import RemoteGateway

LOG = get_logger("accounts")

# Profile keys the signup endpoint understands, mapped from the client's names.
_SIGNUP_FIELDS = {
    "name": "username",
    "email": "email",
    "password": "password",
    "preferences": "preferences",
    "height": "height",
    "weight": "weight",
    "age": "age",
    "gender": "gender",
    "activity_level": "activity_level",
    "goal": "goal",
}
_MACRO_TARGETS = ("calories", "protein", "carbs", "fat")


@dataclass
class LoginResult:
    access_token: str
    user_id: Optional[str]
    user: Dict[str, Any] = field(default_factory=dict)
    message: str = ""


def _error_text(exc: GatewayError, default: str) -> str:
    if isinstance(exc, UploadFailure) and isinstance(exc.body, dict):
        return str(exc.body.get("error") or exc.body.get("detail") or default)
    if isinstance(exc, TransportFailure):
        return f"Network error occurred: {exc.cause}"
    return default


def login(gateway: RemoteGateway, email: str, password: str) -> LoginResult:
    try:
        raw = gateway.submit_json("/login/", {"email": email, "password": password})
    except GatewayError as e:
        raise AuthenticationError(_error_text(e, "Login failed")) from e

    data = raw.json if isinstance(raw.json, dict) else {}
    token = data.get("access_token")
    if not token:
        raise AuthenticationError(str(data.get("error") or "Login failed"))

    user = data.get("user") if isinstance(data.get("user"), dict) else {}
    user_id = data.get("user_id") or user.get("user_id")
    LOG.info(f"Logged in as user_id={user_id}")
    return LoginResult(
        access_token=str(token),
        user_id=str(user_id) if user_id is not None else None,
        user=user,
        message=str(data.get("message") or ""),
    )


def signup(gateway: RemoteGateway, profile: Dict[str, Any]) -> Dict[str, Any]:
    """Create an account; ``profile['macros']`` holds the daily targets."""
    payload: Dict[str, Any] = {}
    for src, dst in _SIGNUP_FIELDS.items():
        payload[dst] = profile.get(src)
    payload["preferences"] = profile.get("preferences") or None
    macros = profile.get("macros") or {}
    for key in _MACRO_TARGETS:
        payload[f"target_{key}"] = macros.get(key)

    try:
        raw = gateway.submit_json("/signup/", payload)
    except GatewayError as e:
        raise AuthenticationError(_error_text(e, "Signup failed")) from e

    data = raw.json if isinstance(raw.json, dict) else {}
    if not data.get("message"):
        raise AuthenticationError(str(data.get("error") or "Signup failed"))
    LOG.info(f"Signup successful: {data.get('message')}")
    return data


def fetch_user(gateway: RemoteGateway, user_id: str) -> Optional[Dict[str, Any]]:
    try:
        raw = gateway.get_json(f"/fetch-user/{user_id}/")
    except GatewayError as e:
        LOG.error(f"Error fetching user {user_id}: {e}")
        return None
    return raw.json if isinstance(raw.json, dict) else None
