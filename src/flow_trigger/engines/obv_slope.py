"""
OBV EMA slope.

OBV moves by the bar's volume in the direction of the close-to-close change.
Its EMA is seeded with the raw OBV until `period` bars have been seen.

Two evaluation policies read the same EMA history:
- LIVE compares ema[0] with ema[1]
- HISTORICAL compares ema[1] with ema[2], so the slope only reflects closed bars
"""

from collections import deque
from typing import Deque, Optional

from ..core.types import EvaluationPolicy, SlopeStatus


def next_obv(prev_obv: float, close: float, prev_close: float, volume: float) -> float:
    delta = close - prev_close
    if delta > 0:
        return prev_obv + volume
    if delta < 0:
        return prev_obv - volume
    return prev_obv


class OBVSlope:

    def __init__(self, period: int):
        self.period = period
        self.alpha = 2.0 / (period + 1)
        self._obv: float = 0.0
        self._bars_seen: int = 0
        # ema[0], ema[1], ema[2] newest first
        self._emas: Deque[float] = deque(maxlen=3)

    @property
    def obv(self) -> float:
        return self._obv

    @property
    def ema(self) -> float:
        return self.ema_at(0)

    def ema_at(self, bars_ago: int) -> float:
        if bars_ago < len(self._emas):
            return self._emas[bars_ago]
        return 0.0

    def update(self, close: float, prev_close: Optional[float], volume: float) -> float:
        """Advance one bar and return the new EMA. The first bar has no prior close and leaves OBV at 0."""
        if prev_close is not None:
            self._obv = next_obv(self._obv, close, prev_close, volume)

        if self._bars_seen < self.period:
            ema = self._obv
        else:
            ema = self.alpha * self._obv + (1 - self.alpha) * self.ema_at(0)

        self._emas.appendleft(ema)
        self._bars_seen += 1
        return ema

    def classify(self, session_active: bool, policy: EvaluationPolicy) -> SlopeStatus:
        if not session_active:
            return SlopeStatus.WAIT
        return self.slope(policy)

    def slope(self, policy: EvaluationPolicy) -> SlopeStatus:
        """EMA slope under `policy`, ignoring the session window."""
        if policy is EvaluationPolicy.LIVE:
            newer, older = self.ema_at(0), self.ema_at(1)
        else:
            newer, older = self.ema_at(1), self.ema_at(2)

        if newer > older:
            return SlopeStatus.UP
        if newer < older:
            return SlopeStatus.DOWN
        return SlopeStatus.FLAT
