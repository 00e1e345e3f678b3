from __future__ import annotations

"""Core data models shared by the classifier, policy, state machine and overlay."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict


class Category(str, Enum):
    DRINK = "drink"
    BOOK = "book"
    TIN = "tin"
    NONE = "none"


class Prediction(BaseModel):
    """Single detector output in video pixel space.

    ``bbox`` is kept as received. Geometry is only needed for drawing, so a
    malformed box is tolerated here and dropped by the overlay renderer.
    """

    label: str = ""
    score: float = 0.0
    bbox: Any = None

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any] | "Prediction") -> "Prediction":
        """Build a prediction from a detector dict (``class``/``label``, ``bbox``/``boundingBox``)."""
        if isinstance(raw, Prediction):
            return raw
        label = raw.get("class") or raw.get("label") or ""
        bbox = raw.get("bbox")
        if bbox is None:
            bbox = raw.get("boundingBox")
        score = raw.get("score")
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            score = 0.0
        elif not math.isfinite(score):
            score = 0.0
        return cls(label=str(label), score=float(score), bbox=bbox)


class DetectionSettings(BaseModel):
    enter_score: float = 0.35
    exit_score: float = 0.30
    frames_enter: int = 4
    frames_exit: int = 6

    model_config = ConfigDict(frozen=True)

    def to_record(self) -> dict:
        """Return the flat camelCase record used for persistence."""
        return {
            "enterScore": self.enter_score,
            "exitScore": self.exit_score,
            "framesEnter": self.frames_enter,
            "framesExit": self.frames_exit,
        }


@dataclass
class DetectionState:
    """Debounced scene state; owned by a single :class:`HysteresisStateMachine`."""

    is_performative: bool = False
    match_streak: int = 0
    non_match_streak: int = 0

    def reset(self) -> None:
        self.is_performative = False
        self.match_streak = 0
        self.non_match_streak = 0

    def as_dict(self) -> dict:
        return {
            "is_performative": self.is_performative,
            "match_streak": self.match_streak,
            "non_match_streak": self.non_match_streak,
        }


@dataclass(frozen=True)
class Size:
    width: float
    height: float


__all__ = [
    "Category",
    "Prediction",
    "DetectionSettings",
    "DetectionState",
    "Size",
]
