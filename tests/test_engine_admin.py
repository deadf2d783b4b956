"""Tests for the engine's admin surface and guard enforcement."""

import logging
from pathlib import Path

import pytest

from arbitpy_ledger.config_loader import PoolSpec, VenueSpec, get_default_config
from arbitpy_ledger.constants import NATIVE_ASSET, NATIVE_POOL_ID, StrategyType
from arbitpy_ledger.engine import LedgerEngine
from arbitpy_ledger.exceptions import (
    FeeTooHigh,
    InsufficientBalance,
    InvalidInput,
    NotFound,
    OperationPaused,
    Unauthorized,
    UnauthorizedVenue,
)

from conftest import ADMIN, ALICE, BOB, EMERGENCY, ENGINE, ONE, REWARD_RESERVE, WETH

EXAMPLE_CONFIG = Path(__file__).parent.parent / "configs" / "engine.example.yaml"


class TestConstruction:
    def test_native_pool_first(self, engine):
        assert engine.pool_count() == 1
        pool = engine.get_pool(NATIVE_POOL_ID)
        assert pool.asset == NATIVE_ASSET
        assert pool.last_accrual_tick == 100

    def test_configured_pools_and_venues(self, make_engine):
        engine = make_engine(
            pools=(PoolSpec(WETH, 5), PoolSpec("USDC", 0, active=False)),
            venues=(VenueSpec("router", "Router"),),
            strategies=((StrategyType.YIELD_FARM, "router"),),
        )
        assert engine.pool_count() == 3
        assert engine.get_pool(1).reward_rate_per_block == 5
        assert engine.get_pool(2).active is False
        assert engine.authorized_venues() == {"router": "Router"}
        assert engine.strategy_venue(StrategyType.YIELD_FARM) == "router"

    def test_strategy_needs_listed_venue(self, make_engine):
        with pytest.raises(UnauthorizedVenue):
            make_engine(strategies=((StrategyType.COMPOUND, "router"),))

    def test_fee_bound_at_construction(self, make_engine):
        with pytest.raises(FeeTooHigh):
            make_engine(platform_fee_bps=1001)

    def test_without_native_pool(self, make_engine):
        engine = make_engine(create_native_pool=False)
        assert engine.pool_count() == 0

    def test_from_config_file(self, custody, calls, clock):
        engine = LedgerEngine.from_config_file(EXAMPLE_CONFIG, custody, calls, clock=clock)
        assert engine.pool_count() == 2
        assert engine.platform_fee_bps == 30
        assert engine.strategy_venue("COMPOUND") == "0x9999999999999999999999999999999999999999"

    def test_default_clock(self, custody, calls):
        engine = LedgerEngine(get_default_config(), custody, calls)
        assert engine.get_pool(NATIVE_POOL_ID).last_accrual_tick == 0


ADMIN_CALLS = [
    ("create_pool", (WETH, 1)),
    ("set_reward_rate", (NATIVE_POOL_ID, 1)),
    ("set_pool_active", (NATIVE_POOL_ID, False)),
    ("authorize_venue", ("router",)),
    ("set_strategy_venue", (StrategyType.COMPOUND, "router")),
    ("update_platform_fee", (10,)),
    ("toggle_arbitrage", ()),
    ("toggle_flash_loans", ()),
    ("pause", ()),
    ("unpause", ()),
    ("transfer_admin", (ALICE,)),
]


class TestAdminCapability:
    @pytest.mark.parametrize("method,args", ADMIN_CALLS)
    def test_non_admin_rejected(self, engine, method, args):
        with pytest.raises(Unauthorized) as exc_info:
            getattr(engine, method)(ALICE, *args)
        assert exc_info.value.required_role == "admin"

    def test_emergency_withdrawer_is_not_admin(self, engine):
        with pytest.raises(Unauthorized):
            engine.pause(EMERGENCY)

    def test_transfer_admin(self, engine):
        engine.transfer_admin(ADMIN, BOB)
        assert engine.admin == BOB
        with pytest.raises(Unauthorized):
            engine.pause(ADMIN)
        engine.pause(BOB)
        assert engine.paused

    def test_renounce_admin(self, engine):
        engine.transfer_admin(ADMIN, None)
        assert engine.admin is None
        with pytest.raises(Unauthorized):
            engine.create_pool(ADMIN, WETH, 1)


class TestPoolAdmin:
    def test_create_pool_sequential_ids(self, engine):
        assert engine.create_pool(ADMIN, WETH, 10) == 1
        assert engine.create_pool(ADMIN, "USDC", 0) == 2
        assert engine.get_platform_stats().total_pool_count == 3

    def test_create_pool_bad_rate(self, engine):
        with pytest.raises(InvalidInput):
            engine.create_pool(ADMIN, WETH, -1)
        assert engine.pool_count() == 1

    def test_set_reward_rate_unknown_pool(self, engine):
        with pytest.raises(NotFound):
            engine.set_reward_rate(ADMIN, 7, 1)

    def test_set_reward_rate_accrues_old_rate_first(self, engine, clock, weth_pool):
        engine.set_reward_rate(ADMIN, weth_pool, 10)
        engine.deposit(ALICE, weth_pool, 100)
        clock.advance(5)
        engine.set_reward_rate(ADMIN, weth_pool, 0)
        clock.advance(5)

        assert engine.pending_rewards(ALICE) == 50

    def test_deactivated_pool(self, engine, clock, weth_pool):
        engine.set_reward_rate(ADMIN, weth_pool, 10)
        engine.deposit(ALICE, weth_pool, 100)
        clock.advance(2)
        engine.set_pool_active(ADMIN, weth_pool, False)
        clock.advance(10)

        assert engine.pending_rewards(ALICE) == 20
        with pytest.raises(InvalidInput) as exc_info:
            engine.deposit(ALICE, weth_pool, 1)
        assert exc_info.value.details["pool_id"] == weth_pool

        engine.withdraw(ALICE, weth_pool, 100)
        assert engine.get_pool_balance(ALICE, weth_pool) == 0


class TestVenueAdmin:
    def test_authorize_and_deauthorize(self, engine):
        engine.authorize_venue(ADMIN, "router", "Router")
        assert engine.is_authorized_venue("router")
        assert engine.authorized_venues() == {"router": "Router"}

        engine.deauthorize_venue(ADMIN, "router")
        assert not engine.is_authorized_venue("router")

    def test_authorize_requires_address(self, engine):
        with pytest.raises(InvalidInput):
            engine.authorize_venue(ADMIN, "")

    def test_deauthorize_unknown(self, engine):
        with pytest.raises(NotFound):
            engine.deauthorize_venue(ADMIN, "router")


class TestFeesAndSwitches:
    def test_update_platform_fee(self, engine):
        engine.update_platform_fee(ADMIN, 1000)
        assert engine.platform_fee_bps == 1000
        with pytest.raises(FeeTooHigh):
            engine.update_platform_fee(ADMIN, 1001)
        assert engine.platform_fee_bps == 1000

    def test_toggles(self, engine):
        assert engine.toggle_arbitrage(ADMIN) is False
        assert engine.arbitrage_enabled is False
        assert engine.toggle_arbitrage(ADMIN) is True
        assert engine.toggle_flash_loans(ADMIN) is False
        assert engine.flash_loans_enabled is False

    def test_pause_blocks_user_entry_points(self, engine, weth_pool):
        engine.deposit(ALICE, weth_pool, ONE)
        engine.pause(ADMIN)

        with pytest.raises(OperationPaused):
            engine.deposit(ALICE, weth_pool, ONE)
        with pytest.raises(OperationPaused):
            engine.withdraw(ALICE, weth_pool, ONE)
        with pytest.raises(OperationPaused):
            engine.claim_rewards(ALICE)

        # admin surface stays available while paused
        engine.create_pool(ADMIN, WETH, 0)
        engine.unpause(ADMIN)
        engine.withdraw(ALICE, weth_pool, ONE)

    def test_starts_paused_from_config(self, make_engine):
        engine = make_engine(paused=True)
        assert engine.paused
        with pytest.raises(OperationPaused):
            engine.deposit(ALICE, NATIVE_POOL_ID, ONE, value=ONE)


class TestEmergencyWithdraw:
    def test_bypasses_accounting(self, engine, custody, weth_pool):
        engine.deposit(ALICE, weth_pool, 10 * ONE)
        engine.emergency_withdraw(EMERGENCY, WETH, 10 * ONE)

        assert custody.balance(WETH, EMERGENCY) == 10 * ONE
        assert custody.balance_of(WETH) == 0
        # ledger still reports the deposit
        assert engine.get_platform_stats().total_value_locked == 10 * ONE
        assert engine.get_pool_balance(ALICE, weth_pool) == 10 * ONE

    def test_explicit_recipient(self, engine, custody):
        engine.emergency_withdraw(EMERGENCY, NATIVE_ASSET, ONE, recipient="cold_wallet")
        assert custody.balance(NATIVE_ASSET, "cold_wallet") == ONE
        assert custody.balance(NATIVE_ASSET, ENGINE) == REWARD_RESERVE - ONE

    def test_allowed_while_paused(self, engine, custody):
        engine.pause(ADMIN)
        engine.emergency_withdraw(EMERGENCY, NATIVE_ASSET, ONE)
        assert custody.balance(NATIVE_ASSET, EMERGENCY) == ONE

    def test_admin_cannot_emergency_withdraw(self, engine):
        with pytest.raises(Unauthorized) as exc_info:
            engine.emergency_withdraw(ADMIN, NATIVE_ASSET, ONE)
        assert exc_info.value.required_role == "emergency_withdrawer"

    def test_more_than_custody(self, engine):
        with pytest.raises(InsufficientBalance):
            engine.emergency_withdraw(EMERGENCY, WETH, 1)

    def test_logged_as_warning(self, engine, caplog):
        with caplog.at_level(logging.WARNING, logger="arbitpy_ledger"):
            engine.emergency_withdraw(EMERGENCY, NATIVE_ASSET, ONE)
        assert "Emergency withdraw" in caplog.text


class TestOutcomeMetrics:
    def test_success_and_failure_counts(self, make_engine, metrics):
        engine = make_engine(metrics=metrics)
        engine.pause(ADMIN)
        with pytest.raises(OperationPaused):
            engine.deposit(ALICE, NATIVE_POOL_ID, ONE, value=ONE)
        with pytest.raises(Unauthorized):
            engine.unpause(ALICE)

        summary = metrics.get_metrics_summary()
        assert summary["operations"] == {
            "pause:committed": 1,
            "deposit:aborted": 1,
            "unpause:aborted": 1,
        }
        assert summary["paused"] is True
        assert metrics.registry.get_sample_value(
            "arbitpy_ledger_failures_total", {"operation": "unpause", "error_kind": "unauthorized"}
        ) == 1

    def test_gauges_track_state(self, make_engine, metrics):
        engine = make_engine(metrics=metrics)
        engine.deposit(ALICE, NATIVE_POOL_ID, 3 * ONE, value=3 * ONE)
        engine.create_pool(ADMIN, WETH, 0)

        summary = metrics.get_metrics_summary()
        assert summary["total_value_locked"] == 3 * ONE
        assert summary["pool_count"] == 2
