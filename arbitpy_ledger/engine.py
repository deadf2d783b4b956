"""
Ledger engine: the entry points of the platform's accounting core.

Every state-mutating entry point runs inside a transaction boundary. The
engine state is deep-copied and custody is snapshotted through the value
transfer port before the call; on any exception both are restored, the
call's events are dropped and the error is re-raised unchanged. A single
in-progress flag rejects any entry point invoked while another one is still
running on the same instance.
"""

import copy
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from .accrual import (
    accrued_reward_per_share,
    checked_add,
    checked_sub,
    pending_delta,
)
from .arbitrage import settle_arbitrage
from .config_loader import EngineConfig, load_engine_config
from .constants import NATIVE_ASSET, EngineOperation, StrategyType
from .events import (
    EventListener,
    EventLog,
    LedgerEvent,
    LiquidityAdded,
    LiquidityRemoved,
    RewardsClaimed,
)
from .exceptions import InsufficientBalance, InvalidInput, NotFound
from .flash_loan import settle_flash_loan
from .guards import (
    Capabilities,
    check_fee,
    require_admin,
    require_authorized_venue,
    require_emergency_withdrawer,
    require_not_in_progress,
    require_not_paused,
)
from .interfaces import DeterministicTickProvider, ExternalCallPort, TickProvider, ValueTransferPort
from .ledger_types import (
    ArbitrageIntent,
    ArbitrageResult,
    FlashLoanIntent,
    FlashLoanResult,
    PlatformStats,
    Pool,
    Position,
    StrategyIntent,
    StrategyResult,
)
from .metrics import EngineMetrics
from .payments import collect_payment, pay_out
from .state import EngineState, settle_account
from .strategy import resolve_strategy_type, settle_strategy

logger = logging.getLogger(__name__)


def _require_positive(amount, what: str = "Amount") -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidInput(f"{what} must be a positive integer: {amount!r}")


class LedgerEngine:
    """
    Multi-pool position ledger with arbitrage, flash-loan and strategy
    settlement.

    Args:
        config: Frozen engine configuration
        transfers: Value transfer port holding the engine's custody
        calls: External call port for venues and borrower callbacks
        clock: Tick provider; a DeterministicTickProvider at 0 by default
        metrics: Optional Prometheus metrics sink
    """

    def __init__(
        self,
        config: EngineConfig,
        transfers: ValueTransferPort,
        calls: ExternalCallPort,
        clock: Optional[TickProvider] = None,
        metrics: Optional[EngineMetrics] = None,
    ):
        self.config = config
        self.transfers = transfers
        self.calls = calls
        self.clock = clock or DeterministicTickProvider()
        self.metrics = metrics
        self.events = EventLog()

        capabilities = Capabilities(
            admin=config.admin,
            emergency_withdrawer=config.emergency_withdrawer,
            fee_recipient=config.fee_recipient,
            platform_fee_bps=check_fee(config.platform_fee_bps),
            flash_loan_fee_bps=check_fee(config.flash_loan_fee_bps),
            paused=config.paused,
            arbitrage_enabled=config.arbitrage_enabled,
            flash_loans_enabled=config.flash_loans_enabled,
        )
        self._state = EngineState(capabilities=capabilities)

        tick = self._now()
        if config.create_native_pool:
            self._state.pools.create(NATIVE_ASSET, config.native_pool_reward_rate, tick)
        for spec in config.pools:
            pool = self._state.pools.create(spec.asset, spec.reward_rate, tick)
            pool.active = spec.active

        for venue in config.venues:
            capabilities.authorized_venues[venue.address] = venue.name
        for strategy_type, venue in config.strategies:
            require_authorized_venue(capabilities, venue)
            capabilities.strategy_venues[resolve_strategy_type(strategy_type)] = venue

        self._update_gauges()
        logger.info(
            f"Ledger engine '{config.name}' ready: {len(self._state.pools)} pools, "
            f"{len(capabilities.authorized_venues)} venues"
        )

    @classmethod
    def from_config_file(
        cls,
        config_path: Union[str, Path],
        transfers: ValueTransferPort,
        calls: ExternalCallPort,
        clock: Optional[TickProvider] = None,
        metrics: Optional[EngineMetrics] = None,
    ) -> "LedgerEngine":
        """Build an engine from a YAML configuration file."""
        return cls(load_engine_config(config_path), transfers, calls, clock=clock, metrics=metrics)

    # Transaction boundary

    def _now(self) -> int:
        return self.clock.current_tick()

    @contextmanager
    def _transaction(self, operation: EngineOperation, caller: str) -> Iterator[EngineState]:
        caps = self._state.capabilities
        try:
            require_not_in_progress(caps, operation)
            require_not_paused(caps, operation)
        except Exception as e:
            self._record_failure(operation, caller, e)
            raise

        saved_state = copy.deepcopy(self._state)
        snapshot_id = self.transfers.snapshot()
        caps.in_progress = operation
        try:
            yield self._state
        except Exception as e:
            self._state = saved_state
            self.transfers.revert(snapshot_id)
            self._record_failure(operation, caller, e)
            raise
        finally:
            self._state.capabilities.in_progress = None

        self.transfers.release(snapshot_id)
        events = self._state.pending_events
        self._state.pending_events = []
        self.events.commit(events)
        if self.metrics is not None:
            self.metrics.record_success(operation.value)
            self._update_gauges()
        logger.info(f"{operation.value} by {caller} committed ({len(events)} events)")

    def _record_failure(self, operation: EngineOperation, caller: str, error: Exception) -> None:
        kind = getattr(error, "kind", type(error).__name__)
        logger.warning(f"{operation.value} by {caller} aborted [{kind}]: {error}")
        if self.metrics is not None:
            self.metrics.record_failure(operation.value, kind)

    def _update_gauges(self) -> None:
        if self.metrics is None:
            return
        self.metrics.update_state(
            self._state.totals.total_value_locked,
            len(self._state.pools),
            self._state.capabilities.paused,
        )

    # Position entry points

    def deposit(self, caller: str, pool_id: int, amount: int, value: int = 0) -> Position:
        """
        Deposit ``amount`` of a pool's asset.

        For the native asset ``value`` must equal ``amount``; for tokens the
        engine pulls ``amount`` from the caller and no value may be attached.

        Returns:
            The caller's position after the deposit
        """
        with self._transaction(EngineOperation.DEPOSIT, caller) as state:
            tick = self._now()
            _require_positive(amount)
            pool = state.pools.accrue(pool_id, tick)
            if not pool.active:
                raise InvalidInput(f"Pool {pool_id} is not active", details={"pool_id": pool_id})

            settle_account(state, caller, tick)
            collect_payment(self.transfers, pool.asset, caller, amount, value)
            state.positions.credit(caller, pool, amount, tick)
            state.totals.total_value_locked = checked_add(state.totals.total_value_locked, amount)

            state.emit(LiquidityAdded(account=caller, tick=tick, asset=pool.asset, amount=amount, pool_id=pool_id))
            return state.positions.get(caller)

    def withdraw(self, caller: str, pool_id: int, amount: int) -> Position:
        """Withdraw ``amount`` from a pool; allowed on inactive pools too."""
        with self._transaction(EngineOperation.WITHDRAW, caller) as state:
            tick = self._now()
            _require_positive(amount)
            pool = state.pools.accrue(pool_id, tick)

            settle_account(state, caller, tick)
            state.positions.debit(caller, pool, amount, tick)
            state.totals.total_value_locked = checked_sub(state.totals.total_value_locked, amount)
            pay_out(self.transfers, pool.asset, caller, amount)

            state.emit(LiquidityRemoved(account=caller, tick=tick, asset=pool.asset, amount=amount, pool_id=pool_id))
            return state.positions.get(caller)

    def claim_rewards(self, caller: str) -> int:
        """Settle every pool the caller is in and pay out pending rewards."""
        with self._transaction(EngineOperation.CLAIM_REWARDS, caller) as state:
            tick = self._now()
            settle_account(state, caller, tick)
            amount = state.positions.take_rewards(caller, tick)
            pay_out(self.transfers, self.config.reward_asset, caller, amount)

            state.emit(RewardsClaimed(account=caller, tick=tick, amount=amount))
            return amount

    # Settlement entry points

    def execute_arbitrage(self, caller: str, intent: ArbitrageIntent, value: int = 0) -> ArbitrageResult:
        with self._transaction(EngineOperation.EXECUTE_ARBITRAGE, caller) as state:
            tick = self._now()
            settle_account(state, caller, tick)
            result = settle_arbitrage(state, self.transfers, self.calls, caller, intent, tick, value)
        if self.metrics is not None:
            self.metrics.record_arbitrage(intent.asset_in, intent.amount_in, result.profit)
        return result

    def flash_loan(self, caller: str, intent: FlashLoanIntent) -> FlashLoanResult:
        """Lend ``intent.amount`` to ``caller``, who must repay it plus fee in its callback."""
        with self._transaction(EngineOperation.FLASH_LOAN, caller) as state:
            tick = self._now()
            settle_account(state, caller, tick)
            result = settle_flash_loan(state, self.transfers, self.calls, caller, intent, tick)
        if self.metrics is not None:
            self.metrics.record_flash_loan(intent.asset, result.fee)
        return result

    def execute_strategy(self, caller: str, intent: StrategyIntent, value: int = 0) -> StrategyResult:
        with self._transaction(EngineOperation.EXECUTE_STRATEGY, caller) as state:
            tick = self._now()
            settle_account(state, caller, tick)
            result = settle_strategy(state, self.transfers, self.calls, caller, intent, tick, value)
        if self.metrics is not None:
            self.metrics.record_strategy(intent.input_asset, intent.input_amount)
        return result

    # Admin surface

    def create_pool(self, caller: str, asset: str, reward_rate: int) -> int:
        """Append a new pool and return its id."""
        with self._transaction(EngineOperation.CREATE_POOL, caller) as state:
            require_admin(state.capabilities, caller)
            pool = state.pools.create(asset, reward_rate, self._now())
            return pool.pool_id

    def set_reward_rate(self, caller: str, pool_id: int, reward_rate: int) -> None:
        with self._transaction(EngineOperation.SET_REWARD_RATE, caller) as state:
            require_admin(state.capabilities, caller)
            state.pools.set_reward_rate(pool_id, reward_rate, self._now())

    def set_pool_active(self, caller: str, pool_id: int, active: bool) -> None:
        with self._transaction(EngineOperation.SET_POOL_ACTIVE, caller) as state:
            require_admin(state.capabilities, caller)
            state.pools.set_active(pool_id, active, self._now())

    def authorize_venue(self, caller: str, venue: str, name: str = "") -> None:
        with self._transaction(EngineOperation.AUTHORIZE_VENUE, caller) as state:
            require_admin(state.capabilities, caller)
            if not venue:
                raise InvalidInput("Venue address is required")
            state.capabilities.authorized_venues[venue] = name or venue

    def deauthorize_venue(self, caller: str, venue: str) -> None:
        """Remove a venue; strategy bindings to it stay but stop working."""
        with self._transaction(EngineOperation.DEAUTHORIZE_VENUE, caller) as state:
            require_admin(state.capabilities, caller)
            if venue not in state.capabilities.authorized_venues:
                raise NotFound(f"Venue {venue} is not authorized", key=venue)
            del state.capabilities.authorized_venues[venue]

    def set_strategy_venue(self, caller: str, strategy_type: Union[StrategyType, str], venue: str) -> None:
        with self._transaction(EngineOperation.SET_STRATEGY_VENUE, caller) as state:
            require_admin(state.capabilities, caller)
            resolved = resolve_strategy_type(strategy_type)
            require_authorized_venue(state.capabilities, venue)
            state.capabilities.strategy_venues[resolved] = venue

    def update_platform_fee(self, caller: str, fee_bps: int) -> None:
        with self._transaction(EngineOperation.UPDATE_PLATFORM_FEE, caller) as state:
            require_admin(state.capabilities, caller)
            state.capabilities.platform_fee_bps = check_fee(fee_bps)

    def toggle_arbitrage(self, caller: str) -> bool:
        with self._transaction(EngineOperation.TOGGLE_ARBITRAGE, caller) as state:
            require_admin(state.capabilities, caller)
            state.capabilities.arbitrage_enabled = not state.capabilities.arbitrage_enabled
            return state.capabilities.arbitrage_enabled

    def toggle_flash_loans(self, caller: str) -> bool:
        with self._transaction(EngineOperation.TOGGLE_FLASH_LOANS, caller) as state:
            require_admin(state.capabilities, caller)
            state.capabilities.flash_loans_enabled = not state.capabilities.flash_loans_enabled
            return state.capabilities.flash_loans_enabled

    def pause(self, caller: str) -> None:
        with self._transaction(EngineOperation.PAUSE, caller) as state:
            require_admin(state.capabilities, caller)
            state.capabilities.paused = True

    def unpause(self, caller: str) -> None:
        with self._transaction(EngineOperation.UNPAUSE, caller) as state:
            require_admin(state.capabilities, caller)
            state.capabilities.paused = False

    def transfer_admin(self, caller: str, new_admin: Optional[str]) -> None:
        """Hand the admin capability to ``new_admin``; None renounces it."""
        with self._transaction(EngineOperation.TRANSFER_ADMIN, caller) as state:
            require_admin(state.capabilities, caller)
            state.capabilities.admin = new_admin or None

    def emergency_withdraw(
        self, caller: str, asset: str, amount: int, recipient: Optional[str] = None
    ) -> None:
        """
        Move ``amount`` of ``asset`` out of custody, bypassing accounting.

        Ledger counters are left untouched, so TVL may no longer match
        custody afterwards.
        """
        with self._transaction(EngineOperation.EMERGENCY_WITHDRAW, caller) as state:
            require_emergency_withdrawer(state.capabilities, caller)
            _require_positive(amount)
            available = self.transfers.balance_of(asset)
            if available < amount:
                raise InsufficientBalance(
                    f"Custody holds {available} {asset}, emergency withdraw needs {amount}",
                    requested=amount,
                    available=available,
                )
            target = recipient or caller
            pay_out(self.transfers, asset, target, amount)
            logger.warning(f"Emergency withdraw of {amount} {asset} to {target} by {caller}")

    # Queries

    def get_pool(self, pool_id: int) -> Pool:
        return copy.deepcopy(self._state.pools.get(pool_id))

    def pool_count(self) -> int:
        return len(self._state.pools)

    def get_position(self, account: str) -> Position:
        return self._state.positions.get(account)

    def get_pool_balance(self, account: str, pool_id: int) -> int:
        self._state.pools.get(pool_id)
        return self._state.positions.get(account).balance_of(pool_id)

    def get_user_token_balance(self, account: str, asset: str) -> int:
        """Sum of ``account``'s balances over every pool of ``asset``."""
        position = self._state.positions.get(account)
        return sum(position.balance_of(pool.pool_id) for pool in self._state.pools.pools_for_asset(asset))

    def pending_rewards(self, account: str) -> int:
        """Claimable rewards projected to the current tick, without settling."""
        tick = self._now()
        position = self._state.positions.get(account)
        total = position.pending_rewards
        for pool_id, balance in position.balances.items():
            pool = self._state.pools.get(pool_id)
            acc = accrued_reward_per_share(pool, tick)
            total += pending_delta(balance, acc, position.reward_checkpoints.get(pool_id, 0))
        return total

    def get_platform_stats(self) -> PlatformStats:
        totals = self._state.totals
        return PlatformStats(
            total_value_locked=totals.total_value_locked,
            total_volume=totals.total_volume,
            total_arbitrage_profit=totals.total_arbitrage_profit,
            total_pool_count=len(self._state.pools),
        )

    @property
    def admin(self) -> Optional[str]:
        return self._state.capabilities.admin

    @property
    def fee_recipient(self) -> str:
        return self._state.capabilities.fee_recipient

    @property
    def platform_fee_bps(self) -> int:
        return self._state.capabilities.platform_fee_bps

    @property
    def flash_loan_fee_bps(self) -> int:
        return self._state.capabilities.flash_loan_fee_bps

    @property
    def paused(self) -> bool:
        return self._state.capabilities.paused

    @property
    def arbitrage_enabled(self) -> bool:
        return self._state.capabilities.arbitrage_enabled

    @property
    def flash_loans_enabled(self) -> bool:
        return self._state.capabilities.flash_loans_enabled

    def is_authorized_venue(self, venue: str) -> bool:
        return venue in self._state.capabilities.authorized_venues

    def authorized_venues(self) -> Dict[str, str]:
        return dict(self._state.capabilities.authorized_venues)

    def strategy_venue(self, strategy_type: Union[StrategyType, str]) -> Optional[str]:
        return self._state.capabilities.strategy_venues.get(resolve_strategy_type(strategy_type))

    # Events

    def subscribe(self, listener: EventListener) -> None:
        """Deliver every committed event to ``listener``."""
        self.events.subscribe(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        self.events.unsubscribe(listener)

    def user_history(self, account: str, limit: Optional[int] = 10) -> List[LedgerEvent]:
        """An account's committed events, most recent first."""
        return self.events.for_account(account, limit)
