from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Any, List, Optional, Sequence

from flow_trigger.core.config import IndicatorParams
from flow_trigger.core.types import Bar, IndicatorRecord, sha256_hex, stable_json
from flow_trigger.engines.fusion import SignalFusionEngine


def records_fingerprint(records: Sequence[IndicatorRecord]) -> str:
    return sha256_hex(stable_json([r.to_payload() for r in records]))


@dataclass
class ReplayResult:
    symbol: str
    config_hash: str
    bars_in: int
    records_out: int
    output_fingerprint: str
    notes: Dict[str, Any]


def replay_bars(
    bars: List[Bar],
    params: Optional[IndicatorParams] = None,
    symbol: str = "UNKNOWN",
    fingerprint_fn: Callable[[List[IndicatorRecord]], str] = records_fingerprint,
) -> ReplayResult:
    """Run a fresh engine over `bars` and fingerprint every classified record."""
    params = params or IndicatorParams()
    engine = SignalFusionEngine(params)
    out = engine.run(bars)

    live_counts: Dict[str, int] = {}
    panel_counts: Dict[str, int] = {}
    for r in out:
        live_counts[r.live_composite.value] = live_counts.get(r.live_composite.value, 0) + 1
        panel_counts[r.historical_composite.value] = panel_counts.get(r.historical_composite.value, 0) + 1

    return ReplayResult(
        symbol=symbol,
        config_hash=params.config_hash,
        bars_in=len(bars),
        records_out=len(out),
        output_fingerprint=fingerprint_fn(out),
        notes={"live": live_counts, "historical": panel_counts},
    )
