"""Label based category classification.

Each category is described by a rule of exact labels and substring keywords.
Rules are evaluated in declaration order so a label that matches several
categories resolves to the first one (drink, then book, then tin).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple, Union

from performative.core.models import Category, Prediction


@dataclass(frozen=True)
class CategoryRule:
    category: Category
    exact: frozenset = field(default_factory=frozenset)
    keywords: Tuple[str, ...] = ()

    def matches(self, label: str) -> bool:
        """``label`` must already be lower-cased."""
        if label in self.exact:
            return True
        return any(k in label for k in self.keywords)


DRINK_CLASSES = frozenset({"cup", "wine glass"})
DRINK_KEYWORDS = ("cup", "glass", "wine")
BOOK_CLASSES = frozenset({"book"})
# heuristic: "can" also hits e.g. "candle"
TIN_KEYWORDS = ("tin", "can", "matcha")

CATEGORY_RULES: Tuple[CategoryRule, ...] = (
    CategoryRule(Category.DRINK, exact=DRINK_CLASSES, keywords=DRINK_KEYWORDS),
    CategoryRule(Category.BOOK, exact=BOOK_CLASSES),
    CategoryRule(Category.TIN, keywords=TIN_KEYWORDS),
)


def normalize_label(label: str | None) -> str:
    return (label or "").lower()


def classify(prediction: Union[Prediction, str]) -> Category:
    """Return the category of ``prediction`` (a :class:`Prediction` or a raw label).

    Only the label is considered; the score plays no part in categorization.
    """
    raw = prediction if isinstance(prediction, str) else prediction.label
    label = normalize_label(raw)
    if not label:
        return Category.NONE
    for rule in CATEGORY_RULES:
        if rule.matches(label):
            return rule.category
    return Category.NONE


def is_performative_category(category: Category) -> bool:
    return category is not Category.NONE


__all__ = [
    "CategoryRule",
    "CATEGORY_RULES",
    "DRINK_CLASSES",
    "DRINK_KEYWORDS",
    "BOOK_CLASSES",
    "TIN_KEYWORDS",
    "normalize_label",
    "classify",
    "is_performative_category",
]
