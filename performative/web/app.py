from __future__ import annotations

"""FastAPI application exposing settings, scene state and overlay."""

from typing import Optional

from fastapi import FastAPI

from performative.core.config import config as _CONFIG
from performative.runtime.loop import FrameLoop
from performative.storage.settings_store import SettingsManager, SettingsStore

from . import api_settings, api_state, health


def create_app(
    settings_manager: Optional[SettingsManager] = None,
    frame_loop: Optional[FrameLoop] = None,
    cfg: Optional[dict] = None,
) -> FastAPI:
    """Build the app. ``settings_manager`` defaults to the one driving ``frame_loop``."""
    cfg = cfg or _CONFIG
    if settings_manager is None:
        settings_manager = frame_loop.settings if frame_loop else SettingsManager(SettingsStore())
    app = FastAPI(title="performative")
    app.state.config = cfg
    app.state.settings_manager = settings_manager
    app.state.frame_loop = frame_loop
    app.include_router(api_settings.router)
    app.include_router(api_state.router)
    app.include_router(health.router)
    return app


__all__ = ["create_app"]
