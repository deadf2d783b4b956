"""
End-to-end ledger scenarios.

Covers the reference accrual, flash-loan, arbitrage and withdrawal walkthroughs
plus the YAML scenario runner.
"""

from pathlib import Path

import pytest
import yaml

from arbitpy_ledger.adapters.paper import PaperVenue, encode_amount
from arbitpy_ledger.config_loader import load_engine_config
from arbitpy_ledger.exceptions import ConfigurationError, InsufficientBalance, LegFailed, LoanNotRepaid
from arbitpy_ledger.ledger_types import ArbitrageIntent, FlashLoanIntent
from arbitpy_ledger.scenario import ScenarioRunner, run_scenario

from conftest import ADMIN, ALICE, BOB, ENGINE, ONE, USDC, VENUE_A, VENUE_B, WETH

ROOT = Path(__file__).parent.parent


class TestRewardScenarios:
    def test_single_depositor(self, engine, clock):
        """
        Rate 10 over 5 ticks with the whole supply pays 10 * 5 * 100 / 100 = 50.

        The figure follows the accrual formula; 500 for this case is wrong.
        """
        pool = engine.create_pool(ADMIN, WETH, 10)
        engine.deposit(ALICE, pool, 100)
        clock.advance(5)

        # 10 per tick * 5 ticks, all of it to the only depositor
        assert engine.claim_rewards(ALICE) == 50

    def test_two_depositors_split_by_share(self, engine, clock):
        pool = engine.create_pool(ADMIN, WETH, 20)
        engine.deposit(ALICE, pool, 100)
        engine.deposit(BOB, pool, 300)
        clock.advance(10)

        assert engine.claim_rewards(ALICE) == 50
        assert engine.claim_rewards(BOB) == 150


class TestFlashLoanScenario:
    @pytest.fixture
    def funded(self, custody):
        custody.mint(WETH, ENGINE, 1_000 * ONE)

    def test_repaid_with_fee(self, engine, custody, borrower, funded):
        result = engine.flash_loan(BOB, FlashLoanIntent(asset=WETH, amount=1_000 * ONE))
        assert result.fee == 900_000_000_000_000_000
        assert custody.balance_of(WETH) == 1_000_900_000_000_000_000_000

    def test_principal_only_is_rejected(self, engine, custody, borrower, funded):
        borrower.shortfall = 900_000_000_000_000_000
        with pytest.raises(LoanNotRepaid):
            engine.flash_loan(BOB, FlashLoanIntent(asset=WETH, amount=1_000 * ONE))
        assert custody.balance_of(WETH) == 1_000 * ONE


class TestArbitrageScenario:
    def test_empty_leg_a_refunds_intake(self, engine, custody, calls):
        calls.register_venue(VENUE_A, lambda payload: 0)
        calls.register_venue(VENUE_B, PaperVenue(custody, VENUE_B, USDC, WETH, 5_050))
        engine.authorize_venue(ADMIN, VENUE_A)
        engine.authorize_venue(ADMIN, VENUE_B)
        before = custody.balance(WETH, ALICE)

        intent = ArbitrageIntent(
            asset_in=WETH,
            asset_out=USDC,
            venue_a=VENUE_A,
            venue_b=VENUE_B,
            amount_in=100,
            min_amount_out=0,
            payload_a=encode_amount(100),
            payload_b=encode_amount(200),
        )
        with pytest.raises(LegFailed):
            engine.execute_arbitrage(ALICE, intent)

        assert custody.balance(WETH, ALICE) == before
        assert custody.balance_of(WETH) == 0

    @pytest.mark.parametrize("fee_bps", [0, 1, 9, 30, 333, 999, 1000])
    def test_fee_split_conserves_profit(self, engine, custody, venues, fee_bps):
        engine.update_platform_fee(ADMIN, fee_bps)
        amount_in = 7 * ONE + 13
        intent = ArbitrageIntent(
            asset_in=WETH,
            asset_out=USDC,
            venue_a=VENUE_A,
            venue_b=VENUE_B,
            amount_in=amount_in,
            min_amount_out=0,
            payload_a=encode_amount(amount_in),
            payload_b=encode_amount(amount_in * 2),
        )
        alice_before = custody.balance(WETH, ALICE)
        result = engine.execute_arbitrage(ALICE, intent)

        assert result.fee + result.user_profit == result.profit
        assert result.fee == result.profit * fee_bps // 10_000
        assert custody.balance(WETH, ALICE) - alice_before + amount_in == result.user_profit


class TestWithdrawScenario:
    def test_overdraw_keeps_supply_and_tvl(self, engine, weth_pool):
        engine.deposit(ALICE, weth_pool, 50)
        with pytest.raises(InsufficientBalance):
            engine.withdraw(ALICE, weth_pool, 51)

        assert engine.get_pool(weth_pool).total_supply == 50
        assert engine.get_platform_stats().total_value_locked == 50


class TestScenarioRunner:
    @pytest.fixture
    def engine_config(self):
        return load_engine_config(ROOT / "configs" / "engine.example.yaml")

    def test_example_scenario_passes(self, engine_config):
        with open(ROOT / "scenarios" / "example.yaml") as f:
            scenario = yaml.safe_load(f)

        report = run_scenario(engine_config, scenario)

        failed = [step for step in report["steps"] if not step["ok"]]
        assert failed == []
        assert report["passed"] is True
        assert report["stats"]["totalPoolCount"] == 2
        assert report["events"] > 0

    def test_expected_error_mismatch_fails_step(self, engine_config):
        scenario = {
            "aliases": {"alice": "0x4444444444444444444444444444444444444444"},
            "balances": [{"asset": "NATIVE", "holder": "alice", "amount": "5"}],
            "steps": [
                {"action": "deposit", "caller": "alice", "pool_id": 0, "amount": "1", "expect_error": "invalid_input"},
                {"action": "withdraw", "caller": "alice", "pool_id": 0, "amount": "9"},
            ],
        }
        report = run_scenario(engine_config, scenario)

        assert report["passed"] is False
        assert [step["ok"] for step in report["steps"]] == [False, False]
        assert report["steps"][1]["error_kind"] == "insufficient_balance"

    def test_aliases_and_native_keyword(self, engine_config):
        runner = ScenarioRunner(engine_config, {"aliases": {"treasury": "NATIVE"}})
        assert runner.resolve("treasury") == "0x0000000000000000000000000000000000000000"
        assert runner.resolve("0x52908400098527886e0f7030069857d2e4169ee7") == (
            "0x52908400098527886E0F7030069857D2E4169EE7"
        )
        assert runner.resolve("plain-name") == "plain-name"

    def test_unknown_action(self, engine_config):
        runner = ScenarioRunner(engine_config, {})
        with pytest.raises(ConfigurationError):
            runner.run_step({"action": "teleport"})

    def test_undeclared_venue(self, engine_config):
        runner = ScenarioRunner(engine_config, {})
        with pytest.raises(ConfigurationError):
            runner.run_step(
                {
                    "action": "arbitrage",
                    "caller": "alice",
                    "asset_in": "WETH",
                    "asset_out": "USDC",
                    "venue_a": "nowhere",
                    "venue_b": "nowhere",
                    "amount_in": "1",
                }
            )
