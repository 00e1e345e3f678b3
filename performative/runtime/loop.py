"""Cooperative frame loop.

One tick reads the latest video frame, awaits the detector, filters the
predictions through the threshold policy, advances the hysteresis state
machine and renders the overlay. Only then is the next tick scheduled, so a
single detector call is in flight at any time and state-machine updates from
two ticks never interleave.

``stop()`` bumps a session token; a tick whose detector call completes after
the session ended drops its result without touching any state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Optional, Protocol

from loguru import logger

from performative.core import events
from performative.core.models import DetectionSettings, Prediction, Size
from performative.runtime.hysteresis import HysteresisStateMachine
from performative.runtime.policy import DEFAULT_POLICY, ThresholdPolicy
from performative.runtime.scheduler import Scheduler
from performative.storage.settings_store import SettingsManager
from performative.vision.overlay import DrawOp, OverlaySurface, render
from utils import logx

DETECTOR_ERROR_LOG_INTERVAL = 5.0


@dataclass
class VideoFrame:
    image: Any
    width: int
    height: int


class Detector(Protocol):
    def detect(self, image: Any) -> Awaitable[Iterable[Any]]:
        ...


FrameSource = Callable[[], Optional[VideoFrame]]


def _coerce(raw: Optional[Iterable[Any]]) -> List[Prediction]:
    preds: List[Prediction] = []
    for item in raw or []:
        if isinstance(item, (Prediction, Mapping)):
            preds.append(Prediction.from_raw(item))
    return preds


class FrameLoop:
    """Drive detector, policy, state machine and overlay once per display tick."""

    def __init__(
        self,
        detector: Detector,
        source: FrameSource,
        settings: SettingsManager,
        scheduler: Scheduler,
        *,
        machine: Optional[HysteresisStateMachine] = None,
        policy: Optional[ThresholdPolicy] = None,
        surface: Optional[OverlaySurface] = None,
        show_boxes: bool = False,
    ) -> None:
        self.detector = detector
        self.source = source
        self.settings = settings
        self.scheduler = scheduler
        self.machine = machine or HysteresisStateMachine()
        self.policy = policy or DEFAULT_POLICY
        self.surface = surface or OverlaySurface()
        self.show_boxes = show_boxes
        self.last_pass_set: List[Prediction] = []
        self.last_ops: List[DrawOp] = []
        self.frames_processed = 0
        self.detector_errors = 0

        self._running = False
        self._visible = True
        self._session = 0
        self._handle: Any = None
        self._busy_session: Optional[int] = None

        settings.subscribe(self.machine.on_settings_changed)

    # ------------------------------------------------------------------
    # lifecycle
    @property
    def running(self) -> bool:
        return self._running

    @property
    def visible(self) -> bool:
        return self._visible

    def start(self) -> None:
        """Begin a new session with a fresh ``DetectionState``."""
        self._cancel_pending()
        self._session += 1
        self._running = True
        self.machine.reset()
        logx.event(events.LOOP_START, session=self._session)
        # a tick still awaiting the detector schedules the next one when it finishes
        if self._visible and self._busy_session is None:
            self._schedule()

    def stop(self) -> None:
        """Cancel the next tick and invalidate any detector call still in flight."""
        self._cancel_pending()
        was_running = self._running
        self._running = False
        self._session += 1
        self.surface.clear()
        self.last_pass_set = []
        self.machine.reset()
        if was_running:
            logx.event(events.LOOP_STOP, session=self._session)

    def set_visible(self, visible: bool) -> None:
        """Pause scheduling while hidden; resume without resetting state."""
        visible = bool(visible)
        if visible == self._visible:
            return
        self._visible = visible
        if not visible:
            self._cancel_pending()
            logx.debug(events.LOOP_PAUSED, session=self._session)
            return
        logx.debug(events.LOOP_RESUMED, session=self._session)
        if self._running and self._busy_session is None:
            self._schedule()

    def set_show_boxes(self, show: bool) -> None:
        self.show_boxes = bool(show)
        if not self.show_boxes:
            self.surface.clear()

    def _alive(self, session: int) -> bool:
        return self._running and session == self._session

    def _schedule(self) -> None:
        if self._handle is None:
            self._handle = self.scheduler.schedule_next(self.tick)

    def _cancel_pending(self) -> None:
        if self._handle is not None:
            self.scheduler.cancel(self._handle)
            self._handle = None

    # ------------------------------------------------------------------
    # per tick work
    async def tick(self) -> None:
        self._handle = None
        session = self._session
        if not self._alive(session):
            return
        self._busy_session = session
        try:
            frame = self.source()
            if frame is None:
                return
            try:
                raw = await self.detector.detect(frame.image)
            except Exception as exc:
                if self._alive(session):
                    self._on_detector_error(exc, frame)
                return
            if not self._alive(session):
                logger.debug("dropping detector result from ended session {}", session)
                return
            self.process(raw, Size(frame.width, frame.height))
        finally:
            if self._busy_session == session:
                self._busy_session = None
            if self._running and self._visible:
                self._schedule()

    def process(self, raw_predictions: Optional[Iterable[Any]], video_size: Size) -> List[Prediction]:
        """Run policy, state machine and overlay for one frame's detector output."""
        settings: DetectionSettings = self.settings.settings
        predictions = _coerce(raw_predictions)
        passed = self.policy.pass_set(predictions, self.machine.state, settings)
        self.last_pass_set = passed
        self.machine.update(bool(passed), settings)
        self._draw(passed, video_size)
        self.frames_processed += 1
        return passed

    def _draw(self, passed: List[Prediction], video_size: Size) -> None:
        try:
            ops = render(
                passed,
                video_size,
                self.surface.size,
                dpr=self.surface.dpr,
                enabled=self.show_boxes,
            )
            self.surface.apply(ops)
        except Exception:
            logger.exception("overlay render failed")
            return
        self.last_ops = ops

    def _on_detector_error(self, exc: Exception, frame: VideoFrame) -> None:
        # streak counters hold their value for a failed frame
        self.detector_errors += 1
        self.last_pass_set = []
        self._draw([], Size(frame.width, frame.height))
        if logx.every(DETECTOR_ERROR_LOG_INTERVAL, events.DETECTOR_ERROR):
            logx.error(events.DETECTOR_ERROR, error=repr(exc), count=self.detector_errors)
        logger.opt(exception=exc).debug("detector call failed")

    def status(self) -> dict:
        return {
            **self.machine.state.as_dict(),
            "running": self._running,
            "visible": self._visible,
            "show_boxes": self.show_boxes,
            "frames_processed": self.frames_processed,
            "detector_errors": self.detector_errors,
        }


__all__ = ["VideoFrame", "Detector", "FrameSource", "FrameLoop"]
