from __future__ import annotations

"""Frame-count hysteresis over the per-frame match signal.

The machine flips to performative after ``frames_enter`` consecutive frames
with a non-empty pass set, and back after ``frames_exit`` consecutive empty
frames. Exactly one notification is sent per real transition.
"""

from typing import Callable, List, Optional

from loguru import logger

from performative.core import events
from performative.core.models import DetectionSettings, DetectionState
from utils import logx

StateSink = Callable[[bool], None]


class HysteresisStateMachine:
    """Own a :class:`DetectionState` and advance it once per processed frame."""

    def __init__(self, state: Optional[DetectionState] = None) -> None:
        self.state = state or DetectionState()
        self._sinks: List[StateSink] = []

    @property
    def is_performative(self) -> bool:
        return self.state.is_performative

    def subscribe(self, sink: StateSink) -> None:
        """Register ``sink`` to receive the new boolean state on every transition."""
        self._sinks.append(sink)

    def unsubscribe(self, sink: StateSink) -> None:
        try:
            self._sinks.remove(sink)
        except ValueError:
            pass

    def _notify(self, value: bool) -> None:
        for sink in list(self._sinks):
            try:
                sink(value)
            except Exception:
                logger.exception("state sink failed")

    def update(self, has_match: bool, settings: DetectionSettings) -> Optional[bool]:
        """Advance one frame; return the new state if a transition happened."""
        st = self.state
        if has_match:
            st.match_streak += 1
            st.non_match_streak = 0
        else:
            st.non_match_streak += 1
            st.match_streak = 0

        if not st.is_performative and st.match_streak >= settings.frames_enter:
            st.is_performative = True
        elif st.is_performative and st.non_match_streak >= settings.frames_exit:
            st.is_performative = False
        else:
            return None

        logx.event(
            events.STATE_PERFORMATIVE if st.is_performative else events.STATE_NONPERFORMATIVE,
            is_performative=st.is_performative,
            match_streak=st.match_streak,
            non_match_streak=st.non_match_streak,
        )
        self._notify(st.is_performative)
        return st.is_performative

    def reset(self, notify: bool = True) -> None:
        """Return to ``(False, 0, 0)``; sinks are told ``False`` without it being a transition."""
        self.state.reset()
        if notify:
            self._notify(False)

    def reset_match_streak(self) -> None:
        self.state.match_streak = 0

    def reset_non_match_streak(self) -> None:
        self.state.non_match_streak = 0

    def on_settings_changed(self, field: str) -> None:
        """Drop partially built streaks when the frame-count thresholds change."""
        if field == "frames_enter":
            self.reset_match_streak()
        elif field == "frames_exit":
            self.reset_non_match_streak()
        elif field == "reset":
            self.reset_match_streak()
            self.reset_non_match_streak()


__all__ = ["HysteresisStateMachine", "StateSink"]
