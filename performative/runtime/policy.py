from __future__ import annotations

"""Confidence threshold policy.

The base threshold depends on the current debounced state: while the scene is
performative the lower ``exit_score`` is enough to keep it, while it is not
the higher ``enter_score`` is needed to declare it. Per-category and
per-label floors are layered on top with ``max``.
"""

from typing import Iterable, List, Mapping, Optional

from performative.core.models import (
    Category,
    DetectionSettings,
    DetectionState,
    Prediction,
)
from performative.vision.classify import classify, normalize_label

# drink floors are per label; keyword matches such as "glass" only need the base threshold
CATEGORY_MIN_SCORE: dict[Category, float] = {
    Category.BOOK: 0.40,
}

LABEL_MIN_SCORE: dict[str, float] = {
    "cup": 0.25,
    "wine glass": 0.35,
    "book": 0.40,
}


def base_threshold(state: DetectionState, settings: DetectionSettings) -> float:
    return settings.exit_score if state.is_performative else settings.enter_score


class ThresholdPolicy:
    """Decide which predictions of a frame count as a performative match."""

    def __init__(
        self,
        category_min: Optional[Mapping[Category, float]] = None,
        label_min: Optional[Mapping[str, float]] = None,
    ) -> None:
        self.category_min = dict(CATEGORY_MIN_SCORE if category_min is None else category_min)
        self.label_min = {
            normalize_label(k): v
            for k, v in (LABEL_MIN_SCORE if label_min is None else label_min).items()
        }

    def required_score(
        self,
        category: Category,
        state: DetectionState,
        settings: DetectionSettings,
        label: str | None = None,
    ) -> float:
        """Return the minimum score a ``category`` prediction needs in ``state``."""
        required = max(base_threshold(state, settings), self.category_min.get(category, 0.0))
        if label is not None:
            required = max(required, self.label_min.get(normalize_label(label), 0.0))
        return required

    def accepts(
        self,
        prediction: Prediction,
        state: DetectionState,
        settings: DetectionSettings,
    ) -> bool:
        category = classify(prediction)
        if category is Category.NONE:
            return False
        required = self.required_score(category, state, settings, prediction.label)
        return prediction.score >= required

    def pass_set(
        self,
        predictions: Iterable[Prediction],
        state: DetectionState,
        settings: DetectionSettings,
    ) -> List[Prediction]:
        """Return every accepted prediction, evaluated against the pre-update ``state``."""
        return [p for p in predictions if self.accepts(p, state, settings)]


DEFAULT_POLICY = ThresholdPolicy()


def required_score(
    category: Category, state: DetectionState, settings: DetectionSettings
) -> float:
    return DEFAULT_POLICY.required_score(category, state, settings)


def accepts(
    prediction: Prediction, state: DetectionState, settings: DetectionSettings
) -> bool:
    return DEFAULT_POLICY.accepts(prediction, state, settings)


__all__ = [
    "CATEGORY_MIN_SCORE",
    "LABEL_MIN_SCORE",
    "ThresholdPolicy",
    "DEFAULT_POLICY",
    "base_threshold",
    "required_score",
    "accepts",
]
