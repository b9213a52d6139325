from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from flow_trigger.core.config import load_params
from flow_trigger.core.types import Bar, optional_payload
from flow_trigger.log.replay import records_fingerprint, replay_bars
from flow_trigger.pipeline.stream import StreamPipeline


def _load_bars(bars_path: str) -> List[dict]:
    with open(bars_path, "r", encoding="utf-8") as f:
        bars = json.load(f)
    if not isinstance(bars, list):
        raise ValueError(f"{bars_path}: expected a JSON list of bars")
    return bars


def replay_json(bars_path: str, params_path: Optional[str] = None, symbol: str = "MES") -> dict:
    params = load_params(params_path)
    payloads = _load_bars(bars_path)

    bars = [Bar.from_payload(p) for p in payloads]

    pipeline = StreamPipeline(params=params)
    streamed = []
    for bar in bars:
        record = pipeline.push(bar, symbol)
        if record is not None:
            streamed.append(record)
    processed = pipeline.engine_for(symbol).bar_count
    pipeline.end_session(symbol)

    # Second pass through a fresh engine; fingerprints must match the streamed run
    replay = replay_bars(bars, params, symbol=symbol)
    streamed_fp = records_fingerprint(streamed)
    last = streamed[-1] if streamed else None

    return {
        "symbol": symbol,
        "config_hash": params.config_hash,
        "bars_processed": processed,
        "records": replay.records_out,
        "signals": replay.notes,
        "fingerprint": replay.output_fingerprint,
        "deterministic": streamed_fp == replay.output_fingerprint,
        "last_record": optional_payload(last),
    }


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser("flow-trigger-replay")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_json = sub.add_parser("json", help="Replay a JSON list of bars (ts/o/h/l/c/v)")
    s_json.add_argument("bars")
    s_json.add_argument("--params", default=None, help="Indicator params YAML (defaults to packaged params)")
    s_json.add_argument("--symbol", default="MES")
    s_json.add_argument("--verbose", action="store_true")

    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    if args.cmd == "json":
        summary = replay_json(args.bars, params_path=args.params, symbol=args.symbol)
        print(json.dumps(summary, indent=2))
        return 0 if summary["deterministic"] else 1
    return 2


if __name__ == "__main__":
    sys.exit(main())
