from __future__ import annotations

"""Detection settings persistence and the single writer that mutates them.

Settings are stored in Redis as one flat JSON record::

    {"enterScore": 0.35, "exitScore": 0.3, "framesEnter": 4, "framesExit": 6}

Loading is tolerant: each field that fails its type check falls back to the
default on its own, and storage errors never reach the caller.
"""

import json
import math
from typing import Any, Callable, List, Mapping, Optional

from loguru import logger
from redis import Redis
from redis.exceptions import RedisError

from performative.core import events
from performative.core.models import DetectionSettings
from performative.core.redis_keys import SETTINGS_KEY
from utils import logx

DEFAULT_SETTINGS = DetectionSettings()

ENTER_SCORE_RANGE = (0.05, 0.99)
EXIT_SCORE_MIN = 0.01
EXIT_SCORE_GAP = 0.01
EXIT_SCORE_FALLBACK_GAP = 0.05
FRAMES_ENTER_RANGE = (1, 60)
FRAMES_EXIT_RANGE = (1, 120)

# persisted name -> model field
RECORD_FIELDS = {
    "enterScore": "enter_score",
    "exitScore": "exit_score",
    "framesEnter": "frames_enter",
    "framesExit": "frames_exit",
}

SettingsListener = Callable[[str], None]


def clamp(v, lo, hi):
    return min(hi, max(lo, v))


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def _is_integer(v: Any) -> bool:
    if isinstance(v, bool):
        return False
    if isinstance(v, int):
        return True
    return isinstance(v, float) and v.is_integer()


def _to_float(v: Any) -> Optional[float]:
    if isinstance(v, bool):
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def _to_int(v: Any) -> Optional[int]:
    f = _to_float(v)
    return None if f is None else int(f)


def parse_record(raw: Any) -> DetectionSettings:
    """Decode a stored record, defaulting each invalid field independently."""
    data = raw
    if isinstance(raw, (str, bytes)):
        data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("settings record is not an object")

    values = DEFAULT_SETTINGS.model_dump()
    for name in ("enterScore", "exitScore"):
        if _is_number(data.get(name)):
            values[RECORD_FIELDS[name]] = float(data[name])
    for name in ("framesEnter", "framesExit"):
        if _is_integer(data.get(name)):
            values[RECORD_FIELDS[name]] = int(data[name])
    return normalize(DetectionSettings(**values))


def normalize(settings: DetectionSettings) -> DetectionSettings:
    """Bring ``settings`` within the ranges the mutation surface allows."""
    enter = clamp(settings.enter_score, *ENTER_SCORE_RANGE)
    exit_ = settings.exit_score
    if exit_ >= enter:
        exit_ = max(EXIT_SCORE_MIN, enter - EXIT_SCORE_FALLBACK_GAP)
    exit_ = clamp(exit_, EXIT_SCORE_MIN, enter - EXIT_SCORE_GAP)
    return DetectionSettings(
        enter_score=enter,
        exit_score=exit_,
        frames_enter=clamp(settings.frames_enter, *FRAMES_ENTER_RANGE),
        frames_exit=clamp(settings.frames_exit, *FRAMES_EXIT_RANGE),
    )


class SettingsStore:
    """Read and write the settings record under ``key`` in Redis."""

    def __init__(self, client: Optional[Redis] = None, key: str = SETTINGS_KEY) -> None:
        self.client = client
        self.key = key

    def load(self) -> DetectionSettings:
        if self.client is None:
            return DEFAULT_SETTINGS
        try:
            raw = self.client.get(self.key)
        except RedisError as exc:
            logx.warn(events.SETTINGS_LOAD_FAIL, error=str(exc))
            return DEFAULT_SETTINGS
        if not raw:
            return DEFAULT_SETTINGS
        try:
            return parse_record(raw)
        except ValueError as exc:
            logx.warn(events.SETTINGS_LOAD_FAIL, error=str(exc))
            return DEFAULT_SETTINGS

    def save(self, settings: DetectionSettings) -> bool:
        if self.client is None:
            return False
        try:
            self.client.set(self.key, json.dumps(settings.to_record()))
        except RedisError as exc:
            logx.warn(events.SETTINGS_SAVE_FAIL, error=str(exc))
            return False
        return True


class SettingsManager:
    """Single writer of :class:`DetectionSettings`.

    Every mutation replaces the settings object, persists it and notifies
    listeners with the name of the changed field (``"reset"`` after
    :meth:`reset`). Readers take ``manager.settings`` once per frame.
    """

    def __init__(
        self,
        store: Optional[SettingsStore] = None,
        settings: Optional[DetectionSettings] = None,
    ) -> None:
        self.store = store or SettingsStore()
        self._settings = normalize(settings) if settings is not None else self.store.load()
        self._listeners: List[SettingsListener] = []

    @property
    def settings(self) -> DetectionSettings:
        return self._settings

    def subscribe(self, listener: SettingsListener) -> None:
        self._listeners.append(listener)

    def _commit(self, field: str, **update: Any) -> DetectionSettings:
        self._settings = self._settings.model_copy(update=update)
        self.store.save(self._settings)
        logx.debug(events.SETTINGS_UPDATED, field=field, **self._settings.model_dump())
        for listener in list(self._listeners):
            try:
                listener(field)
            except Exception:
                logger.exception("settings listener failed")
        return self._settings

    def set_enter_score(self, value: Any) -> DetectionSettings:
        cur = self._settings
        v = _to_float(value)
        enter = clamp(cur.enter_score if v is None else v, *ENTER_SCORE_RANGE)
        exit_ = cur.exit_score
        if exit_ >= enter:
            exit_ = max(EXIT_SCORE_MIN, enter - EXIT_SCORE_FALLBACK_GAP)
        return self._commit("enter_score", enter_score=enter, exit_score=exit_)

    def set_exit_score(self, value: Any) -> DetectionSettings:
        cur = self._settings
        v = _to_float(value)
        exit_ = clamp(
            cur.exit_score if v is None else v,
            EXIT_SCORE_MIN,
            cur.enter_score - EXIT_SCORE_GAP,
        )
        return self._commit("exit_score", exit_score=exit_)

    def set_frames_enter(self, value: Any) -> DetectionSettings:
        v = _to_int(value)
        frames = clamp(self._settings.frames_enter if v is None else v, *FRAMES_ENTER_RANGE)
        return self._commit("frames_enter", frames_enter=frames)

    def set_frames_exit(self, value: Any) -> DetectionSettings:
        v = _to_int(value)
        frames = clamp(self._settings.frames_exit if v is None else v, *FRAMES_EXIT_RANGE)
        return self._commit("frames_exit", frames_exit=frames)

    def apply(self, patch: Mapping[str, Any]) -> DetectionSettings:
        """Apply a partial update given with persisted or model field names."""
        fields = {RECORD_FIELDS.get(k, k): v for k, v in patch.items()}
        unknown = set(fields) - set(RECORD_FIELDS.values())
        if unknown:
            raise KeyError(", ".join(sorted(unknown)))
        setters = (
            ("enter_score", self.set_enter_score),
            ("exit_score", self.set_exit_score),
            ("frames_enter", self.set_frames_enter),
            ("frames_exit", self.set_frames_exit),
        )
        for name, setter in setters:
            if name in fields:
                setter(fields[name])
        return self._settings

    def reset(self) -> DetectionSettings:
        self._settings = DEFAULT_SETTINGS
        self.store.save(self._settings)
        logx.event(events.SETTINGS_RESET, **self._settings.model_dump())
        for listener in list(self._listeners):
            try:
                listener("reset")
            except Exception:
                logger.exception("settings listener failed")
        return self._settings


__all__ = [
    "DEFAULT_SETTINGS",
    "RECORD_FIELDS",
    "SettingsStore",
    "SettingsManager",
    "parse_record",
    "normalize",
]
