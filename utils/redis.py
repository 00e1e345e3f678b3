"""Shared Redis client helpers."""

from __future__ import annotations

import os
from typing import Optional

from redis import Redis

_sync_client: Optional[Redis] = None


def get_sync_client(url: str | None = None) -> Redis:
    """Return a cached synchronous Redis client.

    ``url`` defaults to ``REDIS_URL`` from the environment. Responses are
    decoded to ``str``.
    """
    global _sync_client
    if url is not None:
        return Redis.from_url(url, decode_responses=True)
    if _sync_client is None:
        _sync_client = Redis.from_url(
            os.getenv("REDIS_URL", "redis://127.0.0.1:6379/0"), decode_responses=True
        )
    return _sync_client


__all__ = ["get_sync_client"]
