from __future__ import annotations
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .types import sha256_hex, stable_json

DEFAULT_PARAMS_FILE = Path(__file__).resolve().parent.parent / "contracts" / "indicator_params.yaml"


def _require(condition: bool, msg: str) -> None:
    """Fail-closed helper for parameter validation."""
    if not condition:
        raise ValueError(msg)


def _valid_hhmm(value: int) -> bool:
    return 0 <= value <= 2359 and value % 100 < 60


@dataclass(frozen=True)
class IndicatorParams:
    """
    Parameters fixed for the lifetime of a tracked instrument.

    Session bounds are hhmm integers (745 == 07:45), closed interval.
    history_limit bounds how many past records an engine keeps; None keeps all.
    """
    vwap_lookback: int = 34
    obv_ema_period: int = 34
    cei_lookback: int = 21
    session_start: int = 745
    session_end: int = 1100
    timezone: Optional[str] = None
    history_limit: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("vwap_lookback", "obv_ema_period", "cei_lookback"):
            value = getattr(self, name)
            _require(isinstance(value, int) and not isinstance(value, bool) and value > 0,
                     f"{name} must be a positive integer, got {value!r}")
        _require(_valid_hhmm(self.session_start), f"session_start is not a valid hhmm value: {self.session_start!r}")
        _require(_valid_hhmm(self.session_end), f"session_end is not a valid hhmm value: {self.session_end!r}")
        _require(self.session_start <= self.session_end,
                 f"session_start {self.session_start} is after session_end {self.session_end}")
        if self.timezone is not None:
            try:
                ZoneInfo(self.timezone)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"unknown timezone: {self.timezone!r}") from e
        if self.history_limit is not None:
            _require(isinstance(self.history_limit, int) and self.history_limit >= self.warmup_bars,
                     f"history_limit must be an integer >= {self.warmup_bars} (warm-up), got {self.history_limit!r}")

    @property
    def max_lookback(self) -> int:
        return max(self.vwap_lookback, self.obv_ema_period, self.cei_lookback)

    @property
    def warmup_bars(self) -> int:
        """First bar index that may be classified."""
        return self.max_lookback + 2

    @property
    def config_hash(self) -> str:
        return sha256_hex(stable_json(asdict(self)))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def params_from_mapping(doc: Dict[str, Any]) -> IndicatorParams:
    """Build parameters from a parsed mapping, rejecting unknown keys."""
    _require(isinstance(doc, dict), "indicator params must be a mapping")
    # Allow either a bare mapping or one nested under "indicator_params"
    if "indicator_params" in doc:
        doc = doc["indicator_params"]
        _require(isinstance(doc, dict), "indicator_params must be a mapping")

    known = {f.name for f in fields(IndicatorParams)}
    unknown = sorted(set(doc) - known)
    _require(not unknown, f"unknown indicator params: {', '.join(unknown)}")
    return IndicatorParams(**doc)


def load_params(path: Optional[str] = None) -> IndicatorParams:
    """Load indicator parameters from a YAML file.

    Args:
        path: YAML file to read; the packaged defaults when omitted

    Returns:
        Validated IndicatorParams
    """
    p = Path(path) if path else DEFAULT_PARAMS_FILE
    with p.open("r", encoding="utf-8") as f:
        doc = yaml.safe_load(f) or {}
    return params_from_mapping(doc)
