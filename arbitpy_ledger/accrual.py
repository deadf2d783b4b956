"""
Reward accrual math shared by the pool registry and the position ledger.

All arithmetic is unsigned integer fixed-point. Intermediate products are
checked against the uint256 range and rejected with AmountOverflow instead of
wrapping.

Accrual model:
- reward = elapsed_ticks * reward_rate_per_block
- accRewardPerShare += reward * PRECISION // total_supply
- pending += balance * (accRewardPerShare - checkpoint) // PRECISION
"""

from .constants import BPS_DENOMINATOR, PRECISION, UINT256_MAX
from .exceptions import AmountOverflow, InvalidInput
from .ledger_types import Pool, Position


def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > UINT256_MAX:
        raise AmountOverflow("uint256 addition overflow", operands=(a, b))
    return result


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if result > UINT256_MAX:
        raise AmountOverflow("uint256 multiplication overflow", operands=(a, b))
    return result


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise InvalidInput(f"uint256 subtraction underflow: {a} - {b}")
    return a - b


def fee_for(amount: int, fee_bps: int) -> int:
    """Fee on ``amount`` at ``fee_bps``, rounded down."""
    return checked_mul(amount, fee_bps) // BPS_DENOMINATOR


def accrued_reward_per_share(pool: Pool, current_tick: int) -> int:
    """
    Compute what accRewardPerShare would be at ``current_tick``.

    Pure: the pool is not modified. Pools that are inactive or empty, and
    ticks at or before the last accrual, leave the accumulator unchanged.
    """
    elapsed = current_tick - pool.last_accrual_tick
    if elapsed <= 0 or pool.total_supply == 0 or not pool.active:
        return pool.acc_reward_per_share

    reward = checked_mul(elapsed, pool.reward_rate_per_block)
    increment = checked_mul(reward, PRECISION) // pool.total_supply
    return checked_add(pool.acc_reward_per_share, increment)


def accrue_pool(pool: Pool, current_tick: int) -> int:
    """
    Bring a pool's accumulator up to ``current_tick``.

    Idempotent per tick: a second call at the same tick sees zero elapsed
    ticks. The accumulator never decreases and the clock never moves back.

    Returns:
        Reward units minted by this accrual step
    """
    if current_tick <= pool.last_accrual_tick:
        return 0

    minted = 0
    if pool.total_supply > 0 and pool.active:
        minted = checked_mul(
            current_tick - pool.last_accrual_tick, pool.reward_rate_per_block
        )

    pool.acc_reward_per_share = accrued_reward_per_share(pool, current_tick)
    pool.last_accrual_tick = current_tick
    return minted


def pending_delta(balance: int, acc_reward_per_share: int, checkpoint: int) -> int:
    """Reward earned by ``balance`` since the accumulator stood at ``checkpoint``."""
    if acc_reward_per_share <= checkpoint or balance == 0:
        return 0
    return checked_mul(balance, acc_reward_per_share - checkpoint) // PRECISION


def settle_position(position: Position, pool: Pool) -> int:
    """
    Move the reward a position earned in ``pool`` into its pending rewards.

    The pool must already be accrued to the current tick.

    Returns:
        Reward credited to the position
    """
    checkpoint = position.reward_checkpoints.get(pool.pool_id, 0)
    delta = pending_delta(
        position.balance_of(pool.pool_id), pool.acc_reward_per_share, checkpoint
    )
    if delta:
        position.pending_rewards = checked_add(position.pending_rewards, delta)
    position.reward_checkpoints[pool.pool_id] = pool.acc_reward_per_share
    return delta
