#!/usr/bin/env python3
"""
Configuration check for ledger engine YAML files.

Each file is loaded through the config loader and then used to build a
paper engine, so a config only passes if the engine it describes can
actually start: strategy bindings must name listed venues and fees must be
within bounds. The report lists what the engine came up with.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

import logging_config
from arbitpy_ledger.adapters.paper import InMemoryCallPort, InMemoryCustody
from arbitpy_ledger.config_loader import EngineConfig, load_engine_config
from arbitpy_ledger.constants import StrategyType
from arbitpy_ledger.engine import LedgerEngine
from arbitpy_ledger.exceptions import ArbitPyLedgerError
from arbitpy_ledger.interfaces import DeterministicTickProvider


def engine_warnings(engine: LedgerEngine, config: EngineConfig) -> List[str]:
    """Settings that start fine but leave part of the engine unusable."""
    warnings = []
    if engine.platform_fee_bps == 0:
        warnings.append("platform fee is 0 bps: arbitrage profit goes entirely to callers")
    if not engine.authorized_venues():
        warnings.append("no venues listed: arbitrage and strategies will be rejected")
    if engine.paused:
        warnings.append("engine starts paused: user entry points are rejected until unpause")
    if config.admin == config.emergency_withdrawer:
        warnings.append("admin and emergency withdrawer are the same identity")
    rates = [engine.get_pool(pool_id).reward_rate_per_block for pool_id in range(engine.pool_count())]
    if not any(rates):
        warnings.append("no pool mints rewards: every claim will fail with NoRewards")
    return warnings


def check_config(config_path: Path) -> Dict[str, Any]:
    """Build a paper engine from ``config_path`` and summarize it."""
    result = {"file": str(config_path), "valid": False, "error": None, "warnings": [], "engine": None}

    try:
        config = load_engine_config(config_path)
        engine = LedgerEngine(config, InMemoryCustody(), InMemoryCallPort(), clock=DeterministicTickProvider())
    except ArbitPyLedgerError as e:
        result["error"] = f"{getattr(e, 'kind', type(e).__name__)}: {e}"
        return result

    strategies = {}
    for strategy_type in StrategyType:
        venue = engine.strategy_venue(strategy_type)
        if venue is not None:
            strategies[strategy_type.value] = venue

    result["valid"] = True
    result["warnings"] = engine_warnings(engine, config)
    result["engine"] = {
        "name": config.name,
        "pools": engine.pool_count(),
        "venues": len(engine.authorized_venues()),
        "strategies": strategies,
        "platform_fee_bps": engine.platform_fee_bps,
        "flash_loan_fee_bps": engine.flash_loan_fee_bps,
    }
    return result


def print_report(results: List[Dict[str, Any]]) -> None:
    for result in results:
        if not result["valid"]:
            print(f"FAIL {result['file']}\n  {result['error']}")
            continue

        summary = result["engine"]
        print(f"OK   {result['file']}")
        print(
            f"  {summary['name']}: {summary['pools']} pools, {summary['venues']} venues, "
            f"fees {summary['platform_fee_bps']}/{summary['flash_loan_fee_bps']} bps"
        )
        for strategy_type, venue in summary["strategies"].items():
            print(f"  strategy {strategy_type} -> {venue}")
        for warning in result["warnings"]:
            print(f"  warning: {warning}")

    passed = sum(1 for r in results if r["valid"])
    print(f"\n{passed}/{len(results)} configurations build an engine")


def main():
    parser = argparse.ArgumentParser(
        description="Check that ledger engine configs build a working engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python tools/validate_config.py configs/engine.example.yaml
  python tools/validate_config.py --json configs/*.yaml
  python tools/validate_config.py --strict configs/engine.example.yaml
        """,
    )
    parser.add_argument("config_files", nargs="+", type=Path, help="Configuration file(s) to check")
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")
    parser.add_argument(
        "--strict", "-s", action="store_true", help="Also fail on warnings"
    )
    args = parser.parse_args()

    logging_config.setup(level=logging.ERROR)

    results = [check_config(path) for path in args.config_files]
    if args.json:
        print(json.dumps(results, indent=2))
    else:
        print_report(results)

    if any(not r["valid"] for r in results):
        return 1
    if args.strict and any(r["warnings"] for r in results):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
