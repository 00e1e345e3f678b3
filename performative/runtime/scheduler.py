from __future__ import annotations

"""Tick schedulers for the frame loop.

The loop never sleeps or touches a timer itself; it asks a scheduler to run
the next tick. Production code uses :class:`AsyncioScheduler`, tests drive
the loop with a manual scheduler that runs ticks on demand.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Protocol

Tick = Callable[[], Awaitable[None]]


class Scheduler(Protocol):
    def schedule_next(self, tick: Tick) -> Any:
        """Arrange for ``tick`` to run on the next display frame; return a handle."""

    def cancel(self, handle: Any) -> None:
        """Cancel a handle returned by :meth:`schedule_next`."""


class AsyncioScheduler:
    """Run ticks on the running event loop at roughly ``fps`` frames per second."""

    def __init__(self, fps: float = 30.0, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self.period = 1.0 / float(fps) if fps and fps > 0 else 0.0
        self._loop = loop
        self._tasks: set[asyncio.Task] = set()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule_next(self, tick: Tick) -> asyncio.TimerHandle:
        loop = self._get_loop()

        def _fire() -> None:
            task = loop.create_task(tick())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return loop.call_later(self.period, _fire)

    def cancel(self, handle: Any) -> None:
        if handle is not None:
            handle.cancel()


__all__ = ["Tick", "Scheduler", "AsyncioScheduler"]
