"""Health check endpoints for liveness and readiness."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, status

router = APIRouter()


def _ready(app) -> bool:
    """Return True once settings are loaded and the frame loop is running."""
    loop = getattr(app.state, "frame_loop", None)
    manager = getattr(app.state, "settings_manager", None)
    return manager is not None and loop is not None and loop.running


@router.get("/health/live", status_code=status.HTTP_200_OK)
async def live() -> dict[str, str]:
    """Liveness probe that always succeeds."""
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(request: Request) -> dict[str, str]:
    """Readiness probe that verifies the detection loop is running."""
    if _ready(request.app):
        return {"status": "ok"}
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="not ready"
    )


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check endpoint."""
    return {"status": "ok"}
