import pytest

from src.app.services.routing.threshold import ThresholdFlags, resolve_threshold


def test_default_threshold():
    assert resolve_threshold() == pytest.approx(0.2)
    assert resolve_threshold(None) == pytest.approx(0.2)


def test_skip_low_fill_raises_to_floor():
    assert resolve_threshold(0.2, ThresholdFlags(skip_low_fill=True)) == pytest.approx(0.3)
    assert resolve_threshold(0.45, ThresholdFlags(skip_low_fill=True)) == pytest.approx(0.45)


def test_emergency_only_raises_to_floor():
    assert resolve_threshold(0.2, ThresholdFlags(emergency_only=True)) == pytest.approx(0.6)


def test_prioritize_commercial_lowers_but_not_below_floor():
    assert resolve_threshold(0.2, ThresholdFlags(prioritize_commercial=True)) == pytest.approx(0.15)
    assert resolve_threshold(0.12, ThresholdFlags(prioritize_commercial=True)) == pytest.approx(0.1)


def test_flags_apply_in_fixed_order():
    # commercial applies last, so it discounts the emergency floor
    flags = ThresholdFlags(skip_low_fill=True, emergency_only=True, prioritize_commercial=True)
    assert resolve_threshold(0.2, flags) == pytest.approx(0.55)
    assert resolve_threshold(0.2, ThresholdFlags(skip_low_fill=True, prioritize_commercial=True)) == pytest.approx(0.25)


def test_ceiling_caps_threshold():
    assert resolve_threshold(0.95) == pytest.approx(0.9)
    assert resolve_threshold(1.0, ThresholdFlags(emergency_only=True)) == pytest.approx(0.9)


def test_negative_base_is_clamped_to_zero():
    assert resolve_threshold(-0.3) == 0.0
