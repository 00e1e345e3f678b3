from __future__ import annotations

"""Application configuration loaded from JSON with environment overrides."""

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger

from .redis_keys import SETTINGS_KEY

_CONFIG_PATH = os.getenv("CONFIG_PATH", "config.json")

DEFAULT_CONFIG: dict[str, Any] = {
    "redis_url": "redis://127.0.0.1:6379/0",
    "settings_key": SETTINGS_KEY,
    "target_fps": 30,
    "show_boxes": False,
    "max_dpr": 2.0,
}

# environment variable -> (config key, parser)
_ENV_OVERRIDES = {
    "REDIS_URL": ("redis_url", str),
    "TARGET_FPS": ("target_fps", int),
    "SHOW_BOXES": ("show_boxes", lambda v: v.strip().lower() in {"1", "true", "yes", "on"}),
}

config: dict[str, Any] = DEFAULT_CONFIG.copy()


def load_config(path: str | os.PathLike | None = None) -> dict[str, Any]:
    """Return defaults merged with ``path`` (if present) and environment overrides.

    Unknown keys in the file are kept so callers can carry extra options.
    A missing or unreadable file is not an error; defaults are used instead.
    """
    cfg = DEFAULT_CONFIG.copy()
    cfg_path = Path(path or _CONFIG_PATH)
    if cfg_path.is_file():
        try:
            data = json.loads(cfg_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read config {}: {}", cfg_path, exc)
        else:
            if isinstance(data, dict):
                cfg.update(data)
            else:
                logger.warning("Ignoring config {}: top level is not an object", cfg_path)

    for env, (key, parse) in _ENV_OVERRIDES.items():
        raw = os.getenv(env)
        if raw is None or raw == "":
            continue
        try:
            cfg[key] = parse(raw)
        except ValueError:
            logger.warning("Ignoring invalid {}={!r}", env, raw)
    return cfg


def set_config(cfg: dict) -> None:
    """Replace the global configuration with ``cfg`` on top of the defaults."""

    config.clear()
    config.update(DEFAULT_CONFIG)
    config.update(cfg)


__all__ = ["DEFAULT_CONFIG", "config", "load_config", "set_config"]
