"""
Type definitions for the ledger engine.
Contains the persisted records (pools, positions, aggregates) and the
ephemeral intents and results passed through the entry points.
"""

from dataclasses import dataclass, field
from typing import Dict

from .constants import StrategyType
from .utils import format_units


@dataclass
class Pool:
    """
    A reward-bearing bucket of positions for one asset.

    Attributes:
        pool_id: Sequential id assigned at creation
        asset: Asset accepted by the pool (NATIVE_ASSET for the native currency)
        reward_rate_per_block: Reward units minted per elapsed tick
        last_accrual_tick: Tick at which accrual was last applied
        total_supply: Sum of every position balance in this pool
        acc_reward_per_share: Accumulated reward per share, scaled by PRECISION
        active: Inactive pools refuse deposits and mint no rewards
    """

    pool_id: int
    asset: str
    reward_rate_per_block: int
    last_accrual_tick: int
    total_supply: int = 0
    acc_reward_per_share: int = 0
    active: bool = True


@dataclass
class Position:
    """Per-account balances and reward state across all pools."""

    account: str
    total_deposited: int = 0
    total_withdrawn: int = 0
    pending_rewards: int = 0
    last_interaction_tick: int = 0
    balances: Dict[int, int] = field(default_factory=dict)
    # accRewardPerShare observed at the last settlement, per pool
    reward_checkpoints: Dict[int, int] = field(default_factory=dict)

    def balance_of(self, pool_id: int) -> int:
        return self.balances.get(pool_id, 0)


@dataclass
class LedgerTotals:
    """Reporting aggregates; never consulted for control flow."""

    total_value_locked: int = 0
    total_volume: int = 0
    total_arbitrage_profit: int = 0


@dataclass(frozen=True)
class ArbitrageIntent:
    """Two-leg trade request: assetIn -> assetOut on venue A, back on venue B."""

    asset_in: str
    asset_out: str
    venue_a: str
    venue_b: str
    amount_in: int
    min_amount_out: int
    payload_a: bytes = b""
    payload_b: bytes = b""


@dataclass(frozen=True)
class FlashLoanIntent:
    """Uncollateralized loan request repaid within the same call."""

    asset: str
    amount: int
    data: bytes = b""


@dataclass(frozen=True)
class StrategyIntent:
    """Request to route funds through the venue bound to a strategy type."""

    strategy_type: StrategyType
    input_asset: str
    input_amount: int
    min_output_amount: int
    payload: bytes = b""


@dataclass(frozen=True)
class ArbitrageResult:
    leg_a_amount: int
    leg_b_amount: int
    profit: int
    fee: int
    user_profit: int


@dataclass(frozen=True)
class FlashLoanResult:
    amount: int
    fee: int


@dataclass(frozen=True)
class StrategyResult:
    strategy_type: StrategyType
    input_amount: int
    output_amount: int


@dataclass(frozen=True)
class PlatformStats:
    """Snapshot of the platform-wide aggregates."""

    total_value_locked: int
    total_volume: int
    total_arbitrage_profit: int
    total_pool_count: int

    def to_dict(self):
        """Render amounts in ether units for display and JSON export."""
        return {
            "totalTVL": format_units(self.total_value_locked),
            "totalVolume": format_units(self.total_volume),
            "totalArbitrageProfit": format_units(self.total_arbitrage_profit),
            "totalPoolCount": self.total_pool_count,
        }
