import os
from typing import Dict, Optional, Tuple

from dotenv import dotenv_values

from .logging import get_logger

log = get_logger("config")

DEFAULT_BASE_URL = "http://127.0.0.1:8000"
DEFAULT_TIMEOUT = 30
DEFAULT_HEALTH_TIMEOUT = 5
DEFAULT_THROTTLE_SECONDS = 0.5


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    Running the CLI from a subdirectory still picks up the project's `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Return key/value pairs from the nearest `.env` without touching os.environ."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    try:
        raw = dotenv_values(path)
    except OSError as e:
        log.warning(f"Failed reading .env: {e}")
        return {}
    env = {k: v.strip() for k, v in raw.items() if v is not None}
    log.debug(f"Loaded {len(env)} key(s) from .env at {path}")
    return env


def _lookup(key: str, dotenv_dir: str) -> Optional[str]:
    v = os.environ.get(key)
    if v and v.strip():
        return v.strip()
    v = _read_dotenv(dotenv_dir).get(key)
    return v if v else None


def _as_number(key: str, raw: Optional[str], default: float) -> float:
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        log.warning(f"{key}={raw!r} is not a number; using {default}")
        return default
    if value < 0:
        log.warning(f"{key}={raw!r} is negative; using {default}")
        return default
    return value


def load_base_url(dotenv_dir: str, fallback: str = DEFAULT_BASE_URL) -> str:
    return (_lookup("PANTRY_BASE_URL", dotenv_dir) or fallback).rstrip("/")


def load_user_id(dotenv_dir: str) -> Optional[str]:
    user_id = _lookup("PANTRY_USER_ID", dotenv_dir)
    if user_id:
        log.debug("Resolved PANTRY_USER_ID from env/.env")
    else:
        log.debug("PANTRY_USER_ID not found in env or .env")
    return user_id


def load_timeouts(dotenv_dir: str) -> Tuple[float, float]:
    """Return (request_timeout, health_timeout) in seconds."""
    timeout = _as_number("PANTRY_TIMEOUT", _lookup("PANTRY_TIMEOUT", dotenv_dir), DEFAULT_TIMEOUT)
    health = _as_number(
        "PANTRY_HEALTH_TIMEOUT",
        _lookup("PANTRY_HEALTH_TIMEOUT", dotenv_dir),
        DEFAULT_HEALTH_TIMEOUT,
    )
    return timeout, health


def load_throttle_seconds(dotenv_dir: str) -> float:
    return _as_number(
        "PANTRY_THROTTLE_SECONDS",
        _lookup("PANTRY_THROTTLE_SECONDS", dotenv_dir),
        DEFAULT_THROTTLE_SECONDS,
    )
