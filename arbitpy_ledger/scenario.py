"""
Scenario runner: drive a paper engine through a list of steps.

A scenario is a mapping (usually loaded from YAML)::

    start_tick: 100
    aliases:
      alice: "0x..."
    balances:
      - {asset: NATIVE, holder: alice, amount: "10"}
    venues:
      - {address: venue_a, input_asset: WETH, output_asset: USDC,
         rate_bps: 20000, inventory: "100000", strategy: COMPOUND}
    borrowers:
      - {address: bob, shortfall: 0}
    steps:
      - {action: deposit, caller: alice, pool_id: 0, amount: "1"}
      - {action: advance, ticks: 5}
      - {action: claim, caller: alice}
      - {action: withdraw, caller: alice, pool_id: 0, amount: "2",
         expect_error: insufficient_balance}

Amounts given as strings are display units (18 decimals); integers are raw.
``NATIVE`` names the native asset. Every step records its outcome; a step
whose failure kind matches ``expect_error`` counts as passing.
"""

import logging
from typing import Any, Dict, List

from web3 import Web3

from .config_loader import EngineConfig
from .constants import NATIVE_ASSET
from .engine import LedgerEngine
from .exceptions import ArbitPyLedgerError, ConfigurationError
from .interfaces import DeterministicTickProvider
from .ledger_types import ArbitrageIntent, FlashLoanIntent, StrategyIntent
from .adapters.paper import InMemoryCallPort, InMemoryCustody, PaperBorrower, PaperVenue, encode_amount
from .utils import parse_units

logger = logging.getLogger(__name__)

NATIVE_ALIAS = "NATIVE"


class ScenarioRunner:
    """Paper engine plus the custody, venues and borrowers a scenario declares."""

    def __init__(self, engine_config: EngineConfig, scenario: Dict[str, Any]):
        self.scenario = scenario
        self.aliases: Dict[str, str] = dict(scenario.get("aliases") or {})
        self.custody = InMemoryCustody(self.resolve(scenario.get("engine_address", "engine")))
        self.calls = InMemoryCallPort()
        self.clock = DeterministicTickProvider(scenario.get("start_tick", 0))
        self.engine = LedgerEngine(engine_config, self.custody, self.calls, clock=self.clock)
        self.venues: Dict[str, PaperVenue] = {}
        self.borrowers: Dict[str, PaperBorrower] = {}
        self._setup()

    def resolve(self, name: str) -> str:
        """Map an alias, the NATIVE keyword or a raw address to an identifier."""
        name = self.aliases.get(name, name)
        if name == NATIVE_ALIAS:
            return NATIVE_ASSET
        if Web3.is_address(name):
            return Web3.to_checksum_address(name)
        return name

    def _setup(self) -> None:
        for entry in self.scenario.get("balances") or []:
            self.custody.mint(self.resolve(entry["asset"]), self.resolve(entry["holder"]), parse_units(entry["amount"]))

        admin = self.engine.admin
        for entry in self.scenario.get("venues") or []:
            venue = PaperVenue(
                self.custody,
                self.resolve(entry["address"]),
                self.resolve(entry["input_asset"]),
                self.resolve(entry["output_asset"]),
                int(entry["rate_bps"]),
            )
            self.calls.register_venue(venue.address, venue)
            self.venues[venue.address] = venue
            if entry.get("inventory"):
                self.custody.mint(venue.output_asset, venue.address, parse_units(entry["inventory"]))
            if not self.engine.is_authorized_venue(venue.address):
                self.engine.authorize_venue(admin, venue.address, entry.get("name", venue.address))
            if entry.get("strategy"):
                self.engine.set_strategy_venue(admin, entry["strategy"], venue.address)

        for entry in self.scenario.get("borrowers") or []:
            borrower = PaperBorrower(
                self.custody, self.resolve(entry["address"]), shortfall=parse_units(entry.get("shortfall", 0))
            )
            self.calls.register_borrower(borrower.address, borrower)
            self.borrowers[borrower.address] = borrower

    def _venue(self, address: str) -> PaperVenue:
        venue = self.venues.get(address)
        if venue is None:
            raise ConfigurationError(f"Scenario references undeclared venue {address}")
        return venue

    def _value_for(self, asset: str, amount: int) -> int:
        return amount if asset == NATIVE_ASSET else 0

    def run_step(self, step: Dict[str, Any]) -> Any:
        action = step["action"]
        engine = self.engine
        caller = self.resolve(step["caller"]) if "caller" in step else None

        if action == "advance":
            return self.clock.advance(int(step.get("ticks", 1)))
        if action == "fund":
            self.custody.mint(self.resolve(step["asset"]), self.resolve(step["holder"]), parse_units(step["amount"]))
            return None
        if action == "deposit":
            pool = engine.get_pool(int(step["pool_id"]))
            amount = parse_units(step["amount"])
            return engine.deposit(caller, pool.pool_id, amount, value=self._value_for(pool.asset, amount))
        if action == "withdraw":
            return engine.withdraw(caller, int(step["pool_id"]), parse_units(step["amount"]))
        if action == "claim":
            return engine.claim_rewards(caller)
        if action == "flash_loan":
            intent = FlashLoanIntent(asset=self.resolve(step["asset"]), amount=parse_units(step["amount"]))
            return engine.flash_loan(caller, intent)
        if action == "arbitrage":
            venue_a = self._venue(self.resolve(step["venue_a"]))
            venue_b = self.resolve(step["venue_b"])
            amount_in = parse_units(step["amount_in"])
            asset_in = self.resolve(step["asset_in"])
            intent = ArbitrageIntent(
                asset_in=asset_in,
                asset_out=self.resolve(step["asset_out"]),
                venue_a=venue_a.address,
                venue_b=venue_b,
                amount_in=amount_in,
                min_amount_out=parse_units(step.get("min_amount_out", 0)),
                payload_a=encode_amount(amount_in),
                payload_b=encode_amount(venue_a.quote(amount_in)),
            )
            return engine.execute_arbitrage(caller, intent, value=self._value_for(asset_in, amount_in))
        if action == "strategy":
            input_asset = self.resolve(step["input_asset"])
            input_amount = parse_units(step["input_amount"])
            intent = StrategyIntent(
                strategy_type=step["strategy_type"],
                input_asset=input_asset,
                input_amount=input_amount,
                min_output_amount=parse_units(step.get("min_output_amount", 0)),
                payload=encode_amount(input_amount),
            )
            return engine.execute_strategy(caller, intent, value=self._value_for(input_asset, input_amount))
        if action == "pause":
            return engine.pause(caller)
        if action == "unpause":
            return engine.unpause(caller)
        raise ConfigurationError(f"Unknown scenario action: {action}")

    def run(self) -> Dict[str, Any]:
        outcomes: List[Dict[str, Any]] = []
        for index, step in enumerate(self.scenario.get("steps") or []):
            expected = step.get("expect_error")
            outcome: Dict[str, Any] = {"step": index, "action": step["action"], "tick": self.clock.current_tick()}
            try:
                outcome["result"] = self.run_step(step)
                outcome["ok"] = expected is None
                if expected is not None:
                    outcome["error"] = f"expected {expected}, call succeeded"
            except ArbitPyLedgerError as e:
                outcome["error_kind"] = e.kind
                outcome["ok"] = e.kind == expected
                if not outcome["ok"]:
                    outcome["error"] = str(e)
            if not outcome["ok"]:
                logger.error(f"Scenario step {index} ({step['action']}) failed: {outcome.get('error')}")
            outcomes.append(outcome)

        accounts = sorted({self.resolve(step["caller"]) for step in self.scenario.get("steps") or [] if "caller" in step})
        return {
            "steps": outcomes,
            "passed": all(o["ok"] for o in outcomes),
            "stats": self.engine.get_platform_stats().to_dict(),
            "history": {account: self.engine.user_history(account, limit=None) for account in accounts},
            "events": len(self.engine.events),
        }


def run_scenario(engine_config: EngineConfig, scenario: Dict[str, Any]) -> Dict[str, Any]:
    """Run ``scenario`` on a fresh paper engine and return its report."""
    return ScenarioRunner(engine_config, scenario).run()
