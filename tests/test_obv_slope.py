"""Tests for OBVSlope.

- OBV moves by exactly the bar volume in the direction of close-to-close change
- EMA is seeded with raw OBV until `period` bars have been seen
- LIVE compares ema[0]/ema[1], HISTORICAL compares ema[1]/ema[2]
"""

import pytest

from flow_trigger.core.types import EvaluationPolicy, SlopeStatus
from flow_trigger.engines.obv_slope import OBVSlope, next_obv


# ==========================================
# OBV
# ==========================================

def test_obv_up_down_flat():
    assert next_obv(500.0, close=101.0, prev_close=100.0, volume=30.0) == 530.0
    assert next_obv(500.0, close=99.0, prev_close=100.0, volume=30.0) == 470.0
    assert next_obv(500.0, close=100.0, prev_close=100.0, volume=30.0) == 500.0


def test_obv_steps_by_bar_volume():
    obv = OBVSlope(period=3)
    closes = [10.0, 11.0, 11.0, 9.0, 12.0]
    volumes = [100.0, 200.0, 300.0, 400.0, 500.0]
    prev = None
    seen = []
    for c, v in zip(closes, volumes):
        obv.update(c, prev, v)
        seen.append(obv.obv)
        prev = c
    # bar0: no prior close -> 0; +200; flat; -400; +500
    assert seen == [0.0, 200.0, 200.0, -200.0, 300.0]
    steps = [abs(b - a) for a, b in zip(seen, seen[1:])]
    assert steps == [200.0, 0.0, 400.0, 500.0]


# ==========================================
# EMA
# ==========================================

def test_ema_seeded_with_raw_obv_during_warmup():
    obv = OBVSlope(period=3)
    obv.update(10.0, None, 100.0)
    obv.update(11.0, 10.0, 100.0)
    ema = obv.update(12.0, 11.0, 100.0)
    # three bars seen before smoothing starts -> ema == obv
    assert ema == obv.obv == 200.0


def test_ema_smoothing_after_warmup():
    obv = OBVSlope(period=3)
    prev = None
    for c in [10.0, 11.0, 12.0]:
        obv.update(c, prev, 100.0)
        prev = c
    ema = obv.update(13.0, 12.0, 100.0)
    # alpha = 2 / (3 + 1) = 0.5 ; 0.5 * 300 + 0.5 * 200 = 250
    assert obv.alpha == pytest.approx(0.5)
    assert ema == pytest.approx(250.0)


# ==========================================
# POLICIES
# ==========================================

def _rising_then_flat():
    """EMA history (newest first) ends flat on the current bar after a rise."""
    obv = OBVSlope(period=10)
    obv.update(10.0, None, 100.0)          # ema 0
    obv.update(11.0, 10.0, 100.0)          # ema 100
    obv.update(11.0, 11.0, 100.0)          # ema 100 (seeded, flat)
    return obv


def test_live_compares_current_bar():
    obv = _rising_then_flat()
    assert obv.classify(True, EvaluationPolicy.LIVE) is SlopeStatus.FLAT


def test_historical_lags_one_bar():
    obv = _rising_then_flat()
    assert obv.classify(True, EvaluationPolicy.HISTORICAL) is SlopeStatus.UP


def test_down_slope_both_policies():
    obv = OBVSlope(period=10)
    obv.update(10.0, None, 100.0)
    obv.update(9.0, 10.0, 100.0)
    obv.update(8.0, 9.0, 100.0)
    assert obv.classify(True, EvaluationPolicy.LIVE) is SlopeStatus.DOWN
    assert obv.classify(True, EvaluationPolicy.HISTORICAL) is SlopeStatus.DOWN


def test_wait_outside_session():
    obv = _rising_then_flat()
    for policy in EvaluationPolicy:
        assert obv.classify(False, policy) is SlopeStatus.WAIT


def test_slope_ignores_session():
    obv = _rising_then_flat()
    assert obv.slope(EvaluationPolicy.LIVE) is SlopeStatus.FLAT
    assert obv.slope(EvaluationPolicy.HISTORICAL) is SlopeStatus.UP
