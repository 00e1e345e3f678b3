from __future__ import annotations

"""Assemble a frame loop from configuration."""

import json
import time
from typing import Any, Optional

from loguru import logger
from redis import Redis
from redis.exceptions import RedisError

from performative.core.config import config as _CONFIG
from performative.core.redis_keys import SETTINGS_KEY, STATE_LAST
from performative.runtime.loop import Detector, FrameLoop, FrameSource
from performative.runtime.scheduler import AsyncioScheduler, Scheduler
from performative.storage.settings_store import SettingsManager, SettingsStore
from performative.vision.overlay import OverlaySurface
from utils.redis import get_sync_client


class StatePublisher:
    """State sink that records the latest scene state under ``key``."""

    def __init__(self, client: Redis, key: str = STATE_LAST) -> None:
        self.client = client
        self.key = key

    def __call__(self, is_performative: bool) -> None:
        payload = {"is_performative": bool(is_performative), "ts": time.time()}
        try:
            self.client.set(self.key, json.dumps(payload))
        except RedisError as exc:
            logger.warning("state publish failed: {}", exc)


def build_frame_loop(
    detector: Detector,
    source: FrameSource,
    cfg: Optional[dict[str, Any]] = None,
    *,
    client: Optional[Redis] = None,
    scheduler: Optional[Scheduler] = None,
) -> FrameLoop:
    """Create settings, scheduler, overlay surface and loop from ``cfg``.

    ``client`` defaults to a Redis connection for ``cfg["redis_url"]``. The
    loop is returned stopped; call :meth:`FrameLoop.start` from a running
    event loop.
    """
    cfg = cfg or _CONFIG
    if client is None:
        client = get_sync_client(cfg.get("redis_url"))
    manager = SettingsManager(SettingsStore(client, key=cfg.get("settings_key") or SETTINGS_KEY))
    loop = FrameLoop(
        detector,
        source,
        manager,
        scheduler or AsyncioScheduler(fps=cfg.get("target_fps", 30)),
        surface=OverlaySurface(max_dpr=float(cfg.get("max_dpr", 2.0))),
        show_boxes=bool(cfg.get("show_boxes", False)),
    )
    loop.machine.subscribe(StatePublisher(client))
    logger.info(
        "frame loop ready (fps={}, show_boxes={})", cfg.get("target_fps"), loop.show_boxes
    )
    return loop


__all__ = ["StatePublisher", "build_frame_loop"]
