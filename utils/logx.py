"""Lightweight structured logging helpers used across the app.

Provides convenience wrappers around :mod:`loguru` so modules can emit
structured events that are also mirrored to Redis for consumption by the UI.
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict

from loguru import logger

from .redis import get_sync_client

LOG_EVENTS_KEY = "logs:events"
LOG_EVENTS_MAX = 2000

# in-memory state for throttling helpers
_last_times: Dict[str, float] = {}
_redis_client = None

# required field map for known events
_REQUIRED: dict[str, list[str]] = {
    "state_performative": ["is_performative", "match_streak", "non_match_streak"],
    "state_nonperformative": ["is_performative", "match_streak", "non_match_streak"],
    "detector_error": ["error", "count"],
    "settings_load_fail": ["error"],
    "settings_save_fail": ["error"],
    "loop_start": ["session"],
    "loop_stop": ["session"],
}


def _validate(event: str, fields: Dict[str, Any]) -> None:
    required = _REQUIRED.get(event)
    if not required:
        return
    missing = [k for k in required if k not in fields]
    if missing:
        raise KeyError(f"missing fields for {event}: {', '.join(missing)}")


def push_redis(payload: Dict[str, Any]) -> None:
    """Push *payload* to the Redis ``logs:events`` list.

    The list is capped at 2000 entries to avoid unbounded growth. Errors are
    swallowed so logging never interferes with the detection loop.
    """

    global _redis_client
    if _redis_client is None:
        try:
            _redis_client = get_sync_client()
        except Exception:
            _redis_client = False  # sentinel for failed init
    if not _redis_client:
        return
    try:
        data = json.dumps(payload)
        _redis_client.lpush(LOG_EVENTS_KEY, data)
        _redis_client.ltrim(LOG_EVENTS_KEY, 0, LOG_EVENTS_MAX - 1)
    except Exception:
        pass


def set_redis_client(client) -> None:
    """Use *client* for mirroring; ``False`` disables mirroring."""

    global _redis_client
    _redis_client = client


def _log(level: str, event: str, **fields: Any) -> None:
    """Internal helper to emit a structured log and mirror it to Redis."""

    _validate(event, fields)
    payload: Dict[str, Any] = {
        "ts": time.time(),
        "level": level,
        "event": event,
        **fields,
    }
    logger.log(level.upper(), json.dumps(payload, default=str))
    push_redis(payload)


def event(event: str, **fields: Any) -> None:
    """Log an informational *event* with structured *fields*."""

    _log("info", event, **fields)


def warn(event: str, **fields: Any) -> None:
    """Log a warning *event*."""

    _log("warning", event, **fields)


def error(event: str, **fields: Any) -> None:
    """Log an error *event*."""

    _log("error", event, **fields)


def debug(event: str, **fields: Any) -> None:
    """Log a debug *event*."""

    _log("debug", event, **fields)


def every(seconds: float, key: str) -> bool:
    """Return ``True`` if ``seconds`` elapsed since last call with *key*.

    This is useful for rate-limiting noisy logs.
    """

    now = time.time()
    last = _last_times.get(key, 0)
    if now - last >= seconds:
        _last_times[key] = now
        return True
    return False


__all__ = [
    "event",
    "warn",
    "error",
    "debug",
    "every",
    "push_redis",
    "set_redis_client",
]
