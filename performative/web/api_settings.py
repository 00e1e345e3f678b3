"""Detection settings endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request
from loguru import logger

from performative.storage.settings_store import RECORD_FIELDS, SettingsManager
from utils.api_errors import error_response, settings_error_message

router = APIRouter(prefix="/api/v1/settings")


def _manager(request: Request) -> SettingsManager:
    return request.app.state.settings_manager


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


@router.get("/detection")
def get_detection_settings(request: Request) -> dict:
    return _manager(request).settings.to_record()


@router.patch("/detection")
def patch_detection_settings(request: Request, payload: Any = Body(...)):
    if not isinstance(payload, dict):
        return error_response("invalid_body", settings_error_message("invalid_body"))
    known = set(RECORD_FIELDS) | set(RECORD_FIELDS.values())
    unknown = [k for k in payload if k not in known]
    if unknown:
        return error_response(
            "unknown_field",
            settings_error_message("unknown_field"),
            details={"fields": sorted(unknown)},
        )
    bad = {k: v for k, v in payload.items() if not _is_number(v)}
    if bad:
        return error_response(
            "invalid_value",
            settings_error_message("invalid_value"),
            details={"fields": sorted(bad)},
        )
    settings = _manager(request).apply(payload)
    logger.info({"stage": "settings", "action": "patch", **payload})
    return settings.to_record()


@router.post("/detection/reset")
def reset_detection_settings(request: Request) -> dict:
    settings = _manager(request).reset()
    logger.info({"stage": "settings", "action": "reset"})
    return settings.to_record()
