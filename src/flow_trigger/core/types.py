from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
import json
import hashlib


def stable_json(obj: Any) -> str:
    # Deterministic JSON serialization
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)

def sha256_hex(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


class GateStatus(Enum):
    """VWAP band gate. Panel colours: BLUE (open), GRAY (closed)."""
    WAIT = "WAIT"
    GATE_OPEN = "GATE_OPEN"
    GATE_CLOSED = "GATE_CLOSED"


class VwapLocation(Enum):
    """Where price sits relative to the VWAP stddev bands."""
    WAIT = "WAIT"         # outside the session window
    INSIDE = "INSIDE"     # strictly within +/- 1 stddev
    ACTIVE = "ACTIVE"     # between 1 and 2 stddev on either side
    OUTSIDE = "OUTSIDE"


class SlopeStatus(Enum):
    """OBV EMA slope. Panel colours: GREEN / RED / GRAY."""
    WAIT = "WAIT"
    UP = "UP"
    DOWN = "DOWN"
    FLAT = "FLAT"


class CeiState(Enum):
    """Sign of the accumulated CEI slope. Panel colours: GREEN / RED / GRAY."""
    WAIT = "WAIT"
    RISING = "RISING"
    FALLING = "FALLING"
    FLAT = "FLAT"


class CeiFlip(Enum):
    """Sign inversion of the efficiency metric between two and one bars back."""
    NONE = "NONE"
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"


class LiveSignal(Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    NONE = "NONE"


class PanelSignal(Enum):
    GREEN = "GREEN"
    RED = "RED"
    GRAY = "GRAY"


class EvaluationPolicy(Enum):
    """
    LIVE reacts to the current bar (ema[0] vs ema[1]).
    HISTORICAL compares fully closed bars only (ema[1] vs ema[2]).
    """
    LIVE = "LIVE"
    HISTORICAL = "HISTORICAL"


@dataclass(frozen=True)
class Bar:
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    @staticmethod
    def from_payload(payload: Dict[str, Any]) -> "Bar":
        """
        Build a bar from a feed payload.

        Accepts either the short keys used on the wire (ts/o/h/l/c/v) or the
        long field names. Missing fields raise ValueError.
        """
        def pick(short: str, long: str) -> Any:
            if short in payload:
                return payload[short]
            if long in payload:
                return payload[long]
            raise ValueError(f"bar payload missing '{short}'/'{long}'")

        ts = pick("ts", "timestamp")
        if isinstance(ts, str):
            ts = datetime.fromisoformat(ts)
        if not isinstance(ts, datetime):
            raise ValueError(f"bar timestamp must be datetime or ISO string, got {type(ts).__name__}")

        return Bar(
            timestamp=ts,
            open=float(pick("o", "open")),
            high=float(pick("h", "high")),
            low=float(pick("l", "low")),
            close=float(pick("c", "close")),
            volume=float(pick("v", "volume")),
        )

    def to_payload(self) -> Dict[str, Any]:
        d = asdict(self)
        d["timestamp"] = self.timestamp.isoformat()
        return d


@dataclass(frozen=True)
class IndicatorRecord:
    """Per-bar output of the fusion engine, keyed by bar index."""
    bar_index: int
    timestamp: datetime
    session_active: bool

    # Classifications
    vwap_gate: GateStatus
    vwap_location: VwapLocation
    obv_slope: SlopeStatus          # historical policy (lagged)
    obv_slope_live: SlopeStatus     # live policy
    cei_state: CeiState
    cei_flip: CeiFlip
    live_composite: LiveSignal
    historical_composite: PanelSignal

    # Diagnostics. Numeric values and obv_cei_direction are computed on every
    # classified bar, session or not; they never feed the composites.
    obv_cei_direction: LiveSignal   # CEI slope sign agreeing with live OBV slope, ungated
    vwap: float
    stddev: float
    obv: float
    obv_ema: float
    cei_eff: float
    cei_slope: float

    def to_payload(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for key, value in asdict(self).items():
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, datetime):
                value = value.isoformat()
            out[key] = value
        return out

    def payload_json(self) -> str:
        return stable_json(self.to_payload())


def optional_payload(record: Optional[IndicatorRecord]) -> Optional[Dict[str, Any]]:
    return record.to_payload() if record is not None else None
