"""
Signal fusion - one indicator-state engine, two evaluation policies.

Pipeline per bar:
  BAR -> SessionFilter -> VWAPGate -> OBVSlope -> CEIDetector -> policies -> record

Every indicator is updated on every bar from bar 0 so rolling state is warm by
the time classification starts. Classification (and the output record) only
exists from bar index `max(lookbacks) + 2` onwards.

Policies:
- live_composite: actionable trigger on the current bar
  (location ACTIVE + CEI slope sign + OBV ema[0] vs ema[1])
- historical_composite: panel annotation, one bar lagged
  (gate open + OBV ema[1] vs ema[2] + CEI inversion from two bars to one bar back)
"""

import logging
from collections import OrderedDict
from typing import Iterable, List, Optional

from ..core.config import IndicatorParams
from ..core.types import (
    Bar,
    CeiFlip,
    CeiState,
    EvaluationPolicy,
    GateStatus,
    IndicatorRecord,
    LiveSignal,
    PanelSignal,
    SlopeStatus,
    VwapLocation,
)
from .cei import CEIDetector
from .obv_slope import OBVSlope
from .session import SessionFilter
from .vwap_gate import VWAPGate

logger = logging.getLogger(__name__)


def live_composite(
    session_active: bool,
    location: VwapLocation,
    cei_state: CeiState,
    obv_slope: SlopeStatus,
) -> LiveSignal:
    """Live trigger. obv_slope must come from the LIVE policy."""
    # Session and location gate everything else
    if not session_active or location is not VwapLocation.ACTIVE:
        return LiveSignal.NONE
    if cei_state is CeiState.RISING and obv_slope is SlopeStatus.UP:
        return LiveSignal.LONG
    if cei_state is CeiState.FALLING and obv_slope is SlopeStatus.DOWN:
        return LiveSignal.SHORT
    return LiveSignal.NONE


def historical_composite(
    session_active: bool,
    gate: GateStatus,
    obv_slope: SlopeStatus,
    flip: CeiFlip,
) -> PanelSignal:
    """Panel trigger: CEI must flip in the OBV direction. obv_slope must come from the HISTORICAL policy."""
    if not session_active or gate is not GateStatus.GATE_OPEN:
        return PanelSignal.GRAY
    if obv_slope is SlopeStatus.UP and flip is CeiFlip.POSITIVE:
        return PanelSignal.GREEN
    if obv_slope is SlopeStatus.DOWN and flip is CeiFlip.NEGATIVE:
        return PanelSignal.RED
    return PanelSignal.GRAY


def obv_cei_direction(cei_state: CeiState, obv_slope: SlopeStatus) -> LiveSignal:
    """Direction label with no session or location gate, for status displays."""
    if cei_state is CeiState.RISING and obv_slope is SlopeStatus.UP:
        return LiveSignal.LONG
    if cei_state is CeiState.FALLING and obv_slope is SlopeStatus.DOWN:
        return LiveSignal.SHORT
    return LiveSignal.NONE


class SignalFusionEngine:
    """
    Per-instrument engine. Feed closed bars in time order through on_new_bar().

    Records are stored by bar index. With params.history_limit set, records
    older than that many bars are evicted; record() then returns None for them.
    """

    def __init__(self, params: Optional[IndicatorParams] = None):
        self.params = params or IndicatorParams()
        self.session = SessionFilter(
            start=self.params.session_start,
            end=self.params.session_end,
            timezone=self.params.timezone,
        )
        self.vwap_gate = VWAPGate(self.params.vwap_lookback)
        self.obv_slope = OBVSlope(self.params.obv_ema_period)
        self.cei = CEIDetector(self.params.cei_lookback)

        self._bar_index: int = -1
        self._prior_close: Optional[float] = None
        self._records: "OrderedDict[int, IndicatorRecord]" = OrderedDict()

    @property
    def bar_count(self) -> int:
        return self._bar_index + 1

    @property
    def warmup_bars(self) -> int:
        return self.params.warmup_bars

    def on_new_bar(self, bar: Bar) -> Optional[IndicatorRecord]:
        """
        Update every indicator once for this bar and classify it.

        Returns the bar's record, or None while history is insufficient.
        """
        self._bar_index += 1
        idx = self._bar_index
        prior_close = self._prior_close

        # --- Rolling state (always updated) ---
        prev_vwap = self.vwap_gate.vwap_at(0) if idx > 0 else None
        reading = self.vwap_gate.update(bar.close, bar.volume)
        self.obv_slope.update(bar.close, prior_close, bar.volume)
        eff = self.cei.update(bar.close, reading.vwap, prior_close, prev_vwap, bar.volume)

        # Update prior close only AFTER all indicators consumed it
        self._prior_close = bar.close

        if idx < self.warmup_bars:
            logger.debug(f"bar {idx}: warm-up ({idx + 1}/{self.warmup_bars}), no classification")
            return None

        # --- Classification ---
        session_active = self.session.is_active(bar.timestamp)
        # CEI slope is also a diagnostic, so it is computed for every bar
        cei_slope = self.cei.slope()
        direction = obv_cei_direction(
            CEIDetector.state_for(cei_slope), self.obv_slope.slope(EvaluationPolicy.LIVE)
        )

        if session_active:
            location = VWAPGate.locate(reading.price, reading.vwap, reading.stddev)
            flip = self.cei.inversion()
            gate = VWAPGate.classify(reading, session_active)
            obv_hist = self.obv_slope.classify(session_active, EvaluationPolicy.HISTORICAL)
            obv_live = self.obv_slope.classify(session_active, EvaluationPolicy.LIVE)
            cei_state = CEIDetector.state_for(cei_slope)
        else:
            gate = GateStatus.WAIT
            location = VwapLocation.WAIT
            obv_hist = obv_live = SlopeStatus.WAIT
            cei_state = CeiState.WAIT
            flip = CeiFlip.NONE

        record = IndicatorRecord(
            bar_index=idx,
            timestamp=bar.timestamp,
            session_active=session_active,
            vwap_gate=gate,
            vwap_location=location,
            obv_slope=obv_hist,
            obv_slope_live=obv_live,
            cei_state=cei_state,
            cei_flip=flip,
            live_composite=live_composite(session_active, location, cei_state, obv_live),
            historical_composite=historical_composite(session_active, gate, obv_hist, flip),
            obv_cei_direction=direction,
            vwap=reading.vwap,
            stddev=reading.stddev,
            obv=self.obv_slope.obv,
            obv_ema=self.obv_slope.ema,
            cei_eff=eff,
            cei_slope=cei_slope,
        )
        self._store(record)

        if record.live_composite is not LiveSignal.NONE or record.historical_composite is not PanelSignal.GRAY:
            logger.debug(
                f"bar {idx} {bar.timestamp.isoformat()}: live={record.live_composite.value} "
                f"panel={record.historical_composite.value}"
            )
        return record

    def _store(self, record: IndicatorRecord) -> None:
        self._records[record.bar_index] = record
        limit = self.params.history_limit
        if limit is not None:
            while len(self._records) > limit:
                self._records.popitem(last=False)

    def record(self, index: int) -> Optional[IndicatorRecord]:
        """Record for an absolute bar index, or None if never classified or evicted."""
        return self._records.get(index)

    def bars_ago(self, k: int = 0) -> Optional[IndicatorRecord]:
        return self.record(self._bar_index - k)

    @property
    def latest(self) -> Optional[IndicatorRecord]:
        return self.bars_ago(0)

    def history(self, start: Optional[int] = None, end: Optional[int] = None) -> List[IndicatorRecord]:
        """Stored records with start <= bar_index <= end, in index order."""
        lo = start if start is not None else 0
        hi = end if end is not None else self._bar_index
        return [r for i, r in self._records.items() if lo <= i <= hi]

    def run(self, bars: Iterable[Bar]) -> List[IndicatorRecord]:
        """Fold a whole bar sequence; returns only the classified records."""
        out: List[IndicatorRecord] = []
        for bar in bars:
            record = self.on_new_bar(bar)
            if record is not None:
                out.append(record)
        return out
