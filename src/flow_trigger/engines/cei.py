"""
CEI efficiency detector.

Per bar:
    eff[0] = ((close[0] - vwap[0]) - (close[1] - vwap[1])) / max(1, volume[0])

The state classification uses
    slope = sum(eff[0..lookback-1]) - eff[min(lookback, bar_index)]
exactly as written; near the start of a session the subtracted term is the
oldest sample rather than the one just outside the window.

The inversion flip looks at eff[2] -> eff[1] and feeds only the historical
trigger.
"""

from collections import deque
from typing import Deque, Optional

from ..core.types import CeiFlip, CeiState


def efficiency(close: float, vwap: float, prev_close: float, prev_vwap: float, volume: float) -> float:
    return ((close - vwap) - (prev_close - prev_vwap)) / max(1.0, volume)


def detect_inversion(eff_two_back: float, eff_one_back: float) -> CeiFlip:
    if eff_two_back < 0 and eff_one_back > 0:
        return CeiFlip.POSITIVE
    if eff_two_back > 0 and eff_one_back < 0:
        return CeiFlip.NEGATIVE
    return CeiFlip.NONE


class CEIDetector:

    def __init__(self, lookback: int):
        self.lookback = lookback
        self._bar_index: int = -1
        # eff[0..lookback] newest first; at least three samples for the flip
        self._effs: Deque[float] = deque(maxlen=max(lookback + 1, 3))

    def eff_at(self, bars_ago: int) -> float:
        """Efficiency `bars_ago` bars back; bars before the first one read as 0."""
        if bars_ago < len(self._effs):
            return self._effs[bars_ago]
        return 0.0

    def update(
        self,
        close: float,
        vwap: float,
        prev_close: Optional[float],
        prev_vwap: Optional[float],
        volume: float,
    ) -> float:
        """Append this bar's efficiency. The first bar has nothing to compare against and contributes 0."""
        if prev_close is None or prev_vwap is None:
            eff = 0.0
        else:
            eff = efficiency(close, vwap, prev_close, prev_vwap, volume)
        self._effs.appendleft(eff)
        self._bar_index += 1
        return eff

    def cumulative(self) -> float:
        total = 0.0
        for i in range(self.lookback):
            total += self.eff_at(i)
        return total

    def slope(self) -> float:
        return self.cumulative() - self.eff_at(min(self.lookback, self._bar_index))

    def classify(self, session_active: bool) -> CeiState:
        if not session_active:
            return CeiState.WAIT
        return self.state_for(self.slope())

    @staticmethod
    def state_for(slope: float) -> CeiState:
        if slope > 0:
            return CeiState.RISING
        if slope < 0:
            return CeiState.FALLING
        return CeiState.FLAT

    def inversion(self) -> CeiFlip:
        return detect_inversion(self.eff_at(2), self.eff_at(1))
