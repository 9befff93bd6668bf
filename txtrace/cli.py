from __future__ import annotations

import argparse
import json
from dataclasses import asdict
from typing import Any

from txtrace.config.loader import ConfigLoader
from txtrace.core.executors import ReportExecutor
from txtrace.core.folding import fold_transactions
from txtrace.core.logging import configure_logging
from txtrace.core.records import ReportOutcome
from txtrace.core.timestamps import format_bound, parse_bound


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="txtrace account transaction report")
    parser.add_argument("--config", required=True, help="Path to trace.yaml")
    parser.add_argument("--account", action="append", required=True, dest="accounts", help="Account id (repeatable)")
    parser.add_argument("--start", required=True, type=parse_bound, help="Inclusive UTC start, e.g. 2023-01-01T00:00:00Z")
    parser.add_argument("--end", required=True, type=parse_bound, help="Exclusive UTC end")
    parser.add_argument("--fold", action="store_true", help="Fold rows into one trace per transaction")
    parser.add_argument("--json", action="store_true", help="Output result as JSON")
    return parser


def report_payload(outcome: ReportOutcome, fold: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "failures": [
            {
                "account": failure.account,
                "direction": failure.direction.value,
                "error": str(failure.error),
                "error_type": type(failure.error).__name__,
            }
            for failure in outcome.failures
        ],
    }
    if fold:
        payload["transactions"] = [asdict(trace) for trace in fold_transactions(outcome.rows)]
    else:
        payload["rows"] = [asdict(row) for row in outcome.rows]
    return payload


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.end <= args.start:
        raise SystemExit("--end must be after --start")

    config = ConfigLoader.load_trace_config(args.config)
    configure_logging(json_output=config.logging.json_output, level=config.logging.level.value)

    accounts = set(args.accounts)
    outcome = ReportExecutor(args.config).run(accounts, args.start, args.end, config=config)

    if args.json:
        print(json.dumps(report_payload(outcome, fold=args.fold), ensure_ascii=False, indent=2))
    else:
        transactions = fold_transactions(outcome.rows)
        print(
            f"{len(outcome.rows)} rows, {len(transactions)} transactions for "
            f"{len(accounts)} account(s) in [{format_bound(args.start)}, {format_bound(args.end)})"
        )
        for line in outcome.failure_summary():
            print(f"FAILED {line}")

    return 0 if outcome.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
