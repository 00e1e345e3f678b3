"""Scene state and overlay endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import Response

from performative.runtime.loop import FrameLoop
from utils.api_errors import error_response

router = APIRouter(prefix="/api/v1")


def _loop(request: Request) -> FrameLoop | None:
    return getattr(request.app.state, "frame_loop", None)


def _unavailable():
    return error_response(
        "loop_unavailable", "detection loop is not configured", status_code=503
    )


@router.get("/state")
def get_state(request: Request):
    loop = _loop(request)
    if loop is None:
        return _unavailable()
    return loop.status()


@router.patch("/overlay")
def patch_overlay(request: Request, payload: Any = Body(...)):
    loop = _loop(request)
    if loop is None:
        return _unavailable()
    show = payload.get("show_boxes") if isinstance(payload, dict) else None
    if not isinstance(show, bool):
        return error_response("invalid_value", "show_boxes must be a boolean")
    loop.set_show_boxes(show)
    return {"ok": True, "show_boxes": loop.show_boxes}


@router.get("/overlay.png")
def get_overlay(request: Request):
    loop = _loop(request)
    if loop is None:
        return _unavailable()
    return Response(content=loop.surface.to_png(), media_type="image/png")
