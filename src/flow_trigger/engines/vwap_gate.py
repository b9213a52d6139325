"""
VWAP distance gate.

Rolling VWAP over the last `lookback` closes, weighted by volume, with a
population standard deviation band of the same closes. Price between one and
two standard deviations away from VWAP (either side) opens the gate.

Degenerate cases recover locally:
- zero window volume -> VWAP falls back to the current close
- negative variance from rounding -> clamped to 0 before sqrt
"""

import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, List

from ..core.types import GateStatus, VwapLocation


def compute_vwap(closes: Iterable[float], volumes: Iterable[float], fallback: float) -> float:
    pv = 0.0
    vv = 0.0
    for c, v in zip(closes, volumes):
        pv += c * v
        vv += v
    return fallback if vv == 0 else pv / vv


def compute_stddev(closes: List[float]) -> float:
    """Population stddev via mean of squares, clamped against negative radicands."""
    n = len(closes)
    if n == 0:
        return 0.0
    total = 0.0
    total_sq = 0.0
    for c in closes:
        total += c
        total_sq += c * c
    mean = total / n
    return math.sqrt(max(total_sq / n - mean * mean, 0.0))


@dataclass(frozen=True)
class VWAPReading:
    vwap: float
    stddev: float
    price: float


class VWAPGate:
    """
    Keeps the last `lookback` close/volume pairs plus recent VWAP values.

    During warm-up the window covers whatever bars are available; the engine
    does not classify until the window is full.
    """

    def __init__(self, lookback: int):
        self.lookback = lookback
        self._closes: Deque[float] = deque(maxlen=lookback)
        self._volumes: Deque[float] = deque(maxlen=lookback)
        # vwap[0], vwap[1], ... newest first
        self._vwaps: Deque[float] = deque(maxlen=lookback + 2)

    def update(self, close: float, volume: float) -> VWAPReading:
        self._closes.appendleft(close)
        self._volumes.appendleft(volume)

        vwap = compute_vwap(self._closes, self._volumes, fallback=close)
        stddev = compute_stddev(list(self._closes))
        self._vwaps.appendleft(vwap)
        return VWAPReading(vwap=vwap, stddev=stddev, price=close)

    def vwap_at(self, bars_ago: int = 0) -> float:
        """VWAP stored `bars_ago` bars back; 0.0 before any value exists."""
        if bars_ago < len(self._vwaps):
            return self._vwaps[bars_ago]
        return 0.0

    @staticmethod
    def locate(price: float, vwap: float, stddev: float) -> VwapLocation:
        if vwap - stddev < price < vwap + stddev:
            return VwapLocation.INSIDE
        upper = vwap + stddev < price < vwap + 2 * stddev
        lower = vwap - 2 * stddev < price < vwap - stddev
        if upper or lower:
            return VwapLocation.ACTIVE
        return VwapLocation.OUTSIDE

    @staticmethod
    def classify(reading: VWAPReading, session_active: bool) -> GateStatus:
        if not session_active:
            return GateStatus.WAIT
        if VWAPGate.locate(reading.price, reading.vwap, reading.stddev) is VwapLocation.ACTIVE:
            return GateStatus.GATE_OPEN
        # Inside the first band or beyond two stddev
        return GateStatus.GATE_CLOSED
