from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Dict, Any, Optional, Tuple

from flow_trigger.core.config import IndicatorParams, load_params
from flow_trigger.core.types import Bar, IndicatorRecord
from flow_trigger.engines.fusion import SignalFusionEngine

logger = logging.getLogger(__name__)


class StreamPipeline:
    """
    Simple streaming pipeline that feeds bars to one SignalFusionEngine per
    (symbol, parameter set). Bars are checked for strictly increasing time
    here, before they reach an engine.
    """

    def __init__(
        self,
        params: Optional[IndicatorParams] = None,
        params_path: Optional[str] = None,
    ):
        if params is None:
            params = load_params(params_path)
        self.params = params
        self._config_hash = params.config_hash
        self._engines: Dict[Tuple[str, str], SignalFusionEngine] = {}
        self._last_ts: Dict[Tuple[str, str], datetime] = {}

    def _key(self, symbol: str) -> Tuple[str, str]:
        return (symbol, self._config_hash)

    def engine_for(self, symbol: str) -> SignalFusionEngine:
        key = self._key(symbol)
        engine = self._engines.get(key)
        if engine is None:
            engine = SignalFusionEngine(self.params)
            self._engines[key] = engine
            logger.info(f"Created engine for {symbol} (params {key[1][:12]})")
        return engine

    def has_engine(self, symbol: str) -> bool:
        return self._key(symbol) in self._engines

    def push(self, bar: Bar, symbol: str) -> Optional[IndicatorRecord]:
        key = self._key(symbol)
        last = self._last_ts.get(key)
        try:
            stale = last is not None and bar.timestamp <= last
        except TypeError as e:
            # naive and aware timestamps mixed within one stream
            raise ValueError(f"bar timestamps for {symbol} mix naive and timezone-aware values") from e
        if stale:
            logger.warning(f"Rejected out-of-order bar for {symbol}: {bar.timestamp.isoformat()} <= {last.isoformat()}")
            raise ValueError(f"bar timestamps must be strictly increasing for {symbol}")
        record = self.engine_for(symbol).on_new_bar(bar)
        self._last_ts[key] = bar.timestamp
        return record

    def process(self, bars: Iterable[Dict[str, Any]], symbol: str = "MES") -> Optional[IndicatorRecord]:
        last_record = None
        for payload in bars:
            record = self.push(Bar.from_payload(payload), symbol)
            if record is not None:
                last_record = record
        return last_record

    def end_session(self, symbol: str) -> None:
        """Discard all rolling state for the symbol."""
        key = self._key(symbol)
        engine = self._engines.pop(key, None)
        self._last_ts.pop(key, None)
        if engine is not None:
            logger.info(f"Session ended for {symbol} after {engine.bar_count} bars")
