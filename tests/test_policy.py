import pytest

from performative.core.models import Category, DetectionSettings, DetectionState, Prediction
from performative.runtime.policy import (
    ThresholdPolicy,
    accepts,
    base_threshold,
    required_score,
)


def _pred(label, score):
    return Prediction(label=label, score=score, bbox=(0, 0, 10, 10))


def test_base_threshold_depends_on_state(defaults):
    assert base_threshold(DetectionState(is_performative=False), defaults) == 0.35
    assert base_threshold(DetectionState(is_performative=True), defaults) == 0.30


def test_required_score_uses_category_floor(defaults):
    idle = DetectionState()
    active = DetectionState(is_performative=True)
    assert required_score(Category.BOOK, idle, defaults) == 0.40
    assert required_score(Category.BOOK, active, defaults) == 0.40
    assert required_score(Category.DRINK, idle, defaults) == 0.35
    assert required_score(Category.TIN, active, defaults) == 0.30


def test_category_floor_rejects_above_base(defaults):
    state = DetectionState()
    assert not accepts(_pred("book", 0.38), state, defaults)
    assert accepts(_pred("book", 0.40), state, defaults)


def test_label_floor_applies_on_top(defaults):
    state = DetectionState(is_performative=True)
    assert not accepts(_pred("wine glass", 0.34), state, defaults)
    assert accepts(_pred("wine glass", 0.35), state, defaults)
    assert accepts(_pred("Wine Glass", 0.35), state, defaults)


def test_enter_exit_asymmetry(defaults):
    pred = _pred("cup", 0.32)
    assert not accepts(pred, DetectionState(is_performative=False), defaults)
    assert accepts(pred, DetectionState(is_performative=True), defaults)


def test_non_target_label_never_accepted(defaults):
    assert not accepts(_pred("person", 0.99), DetectionState(), defaults)


def test_pass_set_keeps_order_and_filters(defaults):
    policy = ThresholdPolicy()
    preds = [
        _pred("tin", 0.9),
        _pred("person", 0.9),
        _pred("cup", 0.1),
        _pred("book", 0.5),
    ]
    passed = policy.pass_set(preds, DetectionState(), defaults)
    assert [p.label for p in passed] == ["tin", "book"]


def test_custom_floors():
    policy = ThresholdPolicy(category_min={Category.TIN: 0.8}, label_min={})
    settings = DetectionSettings(enter_score=0.5, exit_score=0.2)
    state = DetectionState()
    assert policy.required_score(Category.TIN, state, settings) == 0.8
    assert policy.required_score(Category.BOOK, state, settings) == 0.5
    assert policy.accepts(_pred("book", 0.5), state, settings)
    assert not policy.accepts(_pred("matcha", 0.79), state, settings)


@pytest.mark.parametrize("score", [0.0, 0.2499])
def test_low_scores_rejected_even_when_performative(score):
    settings = DetectionSettings(enter_score=0.2, exit_score=0.1)
    assert not accepts(_pred("cup", score), DetectionState(is_performative=True), settings)


def test_keyword_drink_only_needs_base_threshold():
    settings = DetectionSettings(enter_score=0.15, exit_score=0.10)
    state = DetectionState(is_performative=True)
    assert accepts(_pred("glass", 0.2), state, settings)
    assert not accepts(_pred("cup", 0.2), state, settings)
