"""
Flow Trigger Engines

Indicators (each owns its rolling state):
- SessionFilter: hhmm session window
- VWAPGate: rolling VWAP with 1-2 stddev gate
- OBVSlope: OBV EMA slope under LIVE / HISTORICAL policies
- CEIDetector: efficiency metric slope and sign inversion

Fusion:
- SignalFusionEngine: shared per-bar state, per-index output records
- live_composite / historical_composite: the two evaluation policies
- obv_cei_direction: ungated direction label for status displays
"""

from .session import SessionFilter
from .vwap_gate import VWAPGate, VWAPReading, compute_vwap, compute_stddev
from .obv_slope import OBVSlope, next_obv
from .cei import CEIDetector, efficiency, detect_inversion
from .fusion import SignalFusionEngine, live_composite, historical_composite, obv_cei_direction

__all__ = [
    # Indicators
    "SessionFilter",
    "VWAPGate",
    "VWAPReading",
    "compute_vwap",
    "compute_stddev",
    "OBVSlope",
    "next_obv",
    "CEIDetector",
    "efficiency",
    "detect_inversion",
    # Fusion
    "SignalFusionEngine",
    "live_composite",
    "historical_composite",
    "obv_cei_direction",
]
