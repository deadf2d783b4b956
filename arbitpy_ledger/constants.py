"""
Constants and enums for the ArbitPy ledger engine.

Centralizes fixed-point scales, fee bounds and identifiers shared by the
accrual math, the settlement engines and the admin surface.
"""

from enum import Enum

# Fixed-point scale for accRewardPerShare
PRECISION = 10**18

# Basis point denominator (10000 bps = 100%)
BPS_DENOMINATOR = 10_000

# Upper bound for any configurable fee (1000 bps = 10%)
MAX_FEE_BPS = 1_000

DEFAULT_PLATFORM_FEE_BPS = 30
DEFAULT_FLASH_LOAN_FEE_BPS = 9

# Integer width of every amount handled by the engine
UINT256_MAX = 2**256 - 1

# Sentinel asset identifier for the chain's native currency
NATIVE_ASSET = "0x0000000000000000000000000000000000000000"

# The native pool is created first, so it always gets id 0
NATIVE_POOL_ID = 0

# Decimals used when rendering amounts for humans
DISPLAY_DECIMALS = 18


class StrategyType(Enum):
    """Strategy families accepted by execute_strategy."""

    COMPOUND = "COMPOUND"
    YIELD_FARM = "YIELD_FARM"
    LIQUIDITY_MINING = "LIQUIDITY_MINING"


class EngineOperation(Enum):
    """Entry points of the engine, used for guards, logs and metrics."""

    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    CLAIM_REWARDS = "claim_rewards"
    EXECUTE_ARBITRAGE = "execute_arbitrage"
    FLASH_LOAN = "flash_loan"
    EXECUTE_STRATEGY = "execute_strategy"
    CREATE_POOL = "create_pool"
    SET_REWARD_RATE = "set_reward_rate"
    SET_POOL_ACTIVE = "set_pool_active"
    AUTHORIZE_VENUE = "authorize_venue"
    DEAUTHORIZE_VENUE = "deauthorize_venue"
    SET_STRATEGY_VENUE = "set_strategy_venue"
    UPDATE_PLATFORM_FEE = "update_platform_fee"
    TOGGLE_ARBITRAGE = "toggle_arbitrage"
    TOGGLE_FLASH_LOANS = "toggle_flash_loans"
    PAUSE = "pause"
    UNPAUSE = "unpause"
    TRANSFER_ADMIN = "transfer_admin"
    EMERGENCY_WITHDRAW = "emergency_withdraw"


# Entry points gated by the global pause switch
PAUSABLE_OPERATIONS = frozenset(
    {
        EngineOperation.DEPOSIT,
        EngineOperation.WITHDRAW,
        EngineOperation.CLAIM_REWARDS,
        EngineOperation.EXECUTE_ARBITRAGE,
        EngineOperation.FLASH_LOAN,
        EngineOperation.EXECUTE_STRATEGY,
    }
)
