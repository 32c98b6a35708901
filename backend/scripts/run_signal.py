#!/usr/bin/env python3
"""
Signal lifecycle runner
=======================

Runs one emit or verify cycle without the HTTP server, using the same
settings (.env / environment) as the API.

Usage:
    python scripts/run_signal.py emit AAPL 5 momentum
    python scripts/run_signal.py emit EUR/USD 15 rsi_bollinger --dry-run
    python scripts/run_signal.py verify
    python scripts/run_signal.py verify --symbol AAPL
    python scripts/run_signal.py strategies
"""

import argparse
import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import get_settings
from app.main import build_service, close_service, configure_logging
from app.strategy_presets import load_presets


async def run_emit(symbol: str, interval: int, strategy: str, dry_run: bool) -> int:
    settings = get_settings()
    service = build_service(settings)
    if dry_run:
        service.notifier = None
    try:
        result = await service.emit(symbol, interval, strategy)
    finally:
        await close_service(service)

    print(f"{result.symbol} {result.interval_minutes}min [{result.strategy}]")
    print(f"  price:  {result.price:.4f}")
    if result.change_pct is not None:
        print(f"  change: {result.change_pct:+.2f}%")
    print(f"  signal: {result.signal.kind.value}")
    print(f"  reason: {result.signal.reason}")
    if result.record:
        suffix = " (already recorded)" if result.duplicate else ""
        print(f"  record: {result.record.id}{suffix}")
    print(f"  notified: {result.notified}")
    return 0


async def run_verify(symbol: str | None) -> int:
    service = build_service(get_settings())
    try:
        run = await service.verify_next(symbol=symbol)
    finally:
        await close_service(service)

    print(f"status: {run.status}")
    if run.record:
        r = run.record
        print(f"  record: {r.id} {r.symbol} {r.signal_kind} @ {r.entry_price}")
        if r.result:
            print(f"  result: {r.result.value} exit={r.exit_price} pnl={r.pnl}")
    return 0


def list_strategies() -> int:
    presets = load_presets(get_settings().strategies_file)
    for name in presets.names():
        config = presets.get(name)
        print(f"{name:<20} {config.family:<16} needs {config.required_bars} bars")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Run one signal emit/verify cycle")
    sub = parser.add_subparsers(dest="command", required=True)

    emit = sub.add_parser("emit", help="Evaluate a strategy and record/announce the signal")
    emit.add_argument("symbol", help="Instrument symbol, e.g. AAPL or EUR/USD")
    emit.add_argument("interval", type=int, help="Bar interval in minutes")
    emit.add_argument("strategy", help="Strategy preset name")
    emit.add_argument("--dry-run", action="store_true", help="Do not send notifications")

    verify = sub.add_parser("verify", help="Verify the oldest pending signal")
    verify.add_argument("--symbol", default=None, help="Only verify signals for this symbol")

    sub.add_parser("strategies", help="List strategy presets")

    args = parser.parse_args()
    configure_logging(get_settings().log_level)

    if args.command == "emit":
        return asyncio.run(run_emit(args.symbol, args.interval, args.strategy, args.dry_run))
    if args.command == "verify":
        return asyncio.run(run_verify(args.symbol))
    return list_strategies()


if __name__ == "__main__":
    sys.exit(main())
