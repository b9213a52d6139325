"""Tests for CEIDetector.

eff[0] = ((close[0] - vwap[0]) - (close[1] - vwap[1])) / max(1, volume[0])
slope  = sum(eff[0..L-1]) - eff[min(L, bar_index)]
flip   = eff[2] -> eff[1] sign inversion
"""

import pytest

from flow_trigger.core.types import CeiFlip, CeiState
from flow_trigger.engines.cei import CEIDetector, detect_inversion, efficiency


def push_closes(detector: CEIDetector, closes, volume: float = 1.0, vwap: float = 0.0):
    """Feed closes against a constant VWAP so eff reduces to (c0 - c1) / volume."""
    prev = None
    for c in closes:
        detector.update(c, vwap, prev, vwap if prev is not None else None, volume)
        prev = c


# ==========================================
# EFFICIENCY
# ==========================================

def test_efficiency_formula():
    # ((105 - 100) - (102 - 99)) / 4 = (5 - 3) / 4 = 0.5
    assert efficiency(105.0, 100.0, 102.0, 99.0, 4.0) == pytest.approx(0.5)


def test_zero_volume_denominator_clamped_to_one():
    assert efficiency(105.0, 100.0, 102.0, 99.0, 0.0) == pytest.approx(2.0)


def test_fractional_volume_denominator_clamped_to_one():
    assert efficiency(105.0, 100.0, 102.0, 99.0, 0.25) == pytest.approx(2.0)


def test_first_bar_contributes_zero():
    detector = CEIDetector(lookback=5)
    eff = detector.update(100.0, 99.0, None, None, 1000.0)
    assert eff == 0.0


# ==========================================
# SLOPE STATE
# ==========================================

def test_slope_subtracts_boundary_sample():
    """lookback 3, effs (oldest first) 0, 1, 2, 4, 8 -> sum(8,4,2) - eff[3] = 14 - 1 = 13."""
    detector = CEIDetector(lookback=3)
    push_closes(detector, [0.0, 1.0, 3.0, 7.0, 15.0])
    assert detector.eff_at(0) == 8.0
    assert detector.cumulative() == pytest.approx(14.0)
    assert detector.slope() == pytest.approx(13.0)


def test_slope_early_in_session_uses_oldest_sample():
    """bar_index 2 < lookback 5 -> subtract eff[2], the bar-0 sample."""
    detector = CEIDetector(lookback=5)
    push_closes(detector, [10.0, 12.0, 13.0])
    # effs newest first: 1, 2, 0 ; missing history reads 0
    assert detector.cumulative() == pytest.approx(3.0)
    assert detector.slope() == pytest.approx(3.0)


def test_state_rising_falling_flat():
    assert CEIDetector.state_for(0.01) is CeiState.RISING
    assert CEIDetector.state_for(-0.01) is CeiState.FALLING
    assert CEIDetector.state_for(0.0) is CeiState.FLAT


def test_state_waits_outside_session():
    detector = CEIDetector(lookback=3)
    push_closes(detector, [1.0, 2.0, 3.0, 4.0])
    assert detector.classify(session_active=False) is CeiState.WAIT
    assert detector.classify(session_active=True) is CeiState.RISING


# ==========================================
# INVERSION
# ==========================================

def test_detect_inversion():
    assert detect_inversion(-0.5, 0.3) is CeiFlip.POSITIVE
    assert detect_inversion(0.3, -0.5) is CeiFlip.NEGATIVE
    assert detect_inversion(0.0, 0.3) is CeiFlip.NONE
    assert detect_inversion(0.2, 0.3) is CeiFlip.NONE
    assert detect_inversion(-0.2, -0.3) is CeiFlip.NONE


def test_inversion_reads_two_and_one_bars_back():
    """effs: 0, -0.5, +0.3 then the current bar; the flip ignores the current bar."""
    detector = CEIDetector(lookback=3)
    push_closes(detector, [10.0, 9.5, 9.8, 0.0])
    assert detector.eff_at(2) == pytest.approx(-0.5)
    assert detector.eff_at(1) == pytest.approx(0.3)
    assert detector.eff_at(0) < 0
    assert detector.inversion() is CeiFlip.POSITIVE


def test_inversion_reversed_order_is_negative():
    detector = CEIDetector(lookback=3)
    push_closes(detector, [10.0, 10.3, 9.8, 20.0])
    assert detector.inversion() is CeiFlip.NEGATIVE
