#!/usr/bin/env python3
"""
Paper scenario runner CLI.

Builds a paper ledger engine from an engine config and replays the steps of
a scenario file against it, printing each step's outcome and the final
platform stats.

Usage:
    python3 run_scenario.py
    python3 run_scenario.py --config configs/engine.example.yaml --scenario scenarios/example.yaml
    python3 run_scenario.py --scenario scenarios/example.yaml --json
"""

import argparse
import logging
import sys

import logging_config
from arbitpy_ledger.config_loader import load_engine_config, load_yaml_config
from arbitpy_ledger.exceptions import ArbitPyLedgerError
from arbitpy_ledger.metrics import EngineMetrics
from arbitpy_ledger.scenario import ScenarioRunner
from arbitpy_ledger.utils import format_units, safe_json_dump


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Replay a ledger scenario on a paper engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the bundled example
  python3 run_scenario.py

  # Custom engine config and scenario
  python3 run_scenario.py --config configs/engine.example.yaml --scenario my_scenario.yaml

  # Machine-readable report
  python3 run_scenario.py --json
        """,
    )

    parser.add_argument(
        "--config",
        default="configs/engine.example.yaml",
        help="Path to engine config YAML (default: configs/engine.example.yaml)",
    )
    parser.add_argument(
        "--scenario",
        default="scenarios/example.yaml",
        help="Path to scenario YAML (default: scenarios/example.yaml)",
    )
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")

    return parser.parse_args()


def print_report(report: dict) -> None:
    print("\n=== Scenario Results ===")
    for outcome in report["steps"]:
        status = "✓" if outcome["ok"] else "✗"
        line = f"{status} [{outcome['tick']:>6}] {outcome['action']}"
        if "error_kind" in outcome:
            line += f" -> {outcome['error_kind']}"
        elif isinstance(outcome.get("result"), int):
            line += f" -> {format_units(outcome['result'])}"
        print(line)
        if not outcome["ok"]:
            print(f"    {outcome.get('error')}")

    stats = report["stats"]
    print("=" * 40)
    print(f"TVL:               {stats['totalTVL']}")
    print(f"Volume:            {stats['totalVolume']}")
    print(f"Arbitrage profit:  {stats['totalArbitrageProfit']}")
    print(f"Pools:             {stats['totalPoolCount']}")
    print(f"Events:            {report['events']}")


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 if every step passed, 1 otherwise)
    """
    args = parse_args()
    if args.debug:
        logging_config.setup_debug()
    else:
        logging_config.setup(level=logging.ERROR if args.json else logging.INFO)

    try:
        engine_config = load_engine_config(args.config)
        scenario = load_yaml_config(args.scenario)
    except ArbitPyLedgerError as e:
        print(f"❌ Config error: {e}", file=sys.stderr)
        return 1

    try:
        runner = ScenarioRunner(engine_config, scenario)
        if engine_config.observability.metrics_enabled:
            runner.engine.metrics = EngineMetrics()
            runner.engine.metrics.start_server(engine_config.observability.metrics_port)
        report = runner.run()
    except ArbitPyLedgerError as e:
        print(f"❌ Scenario failed: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(safe_json_dump(report))
    else:
        print_report(report)

    return 0 if report["passed"] else 1


if __name__ == "__main__":
    sys.exit(main())
