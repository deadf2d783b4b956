"""
Per-account position ledger.

Holds balances per pool and pending rewards for every account. Every mutation
first settles the account's reward in the affected pool, so balances never
change without the reward earned on the old balance being credited.
"""

import copy
import logging
from typing import Dict, Iterator

from .accrual import checked_add, settle_position
from .exceptions import InsufficientBalance, NoRewards
from .ledger_types import Pool, Position

logger = logging.getLogger(__name__)


class PositionLedger:
    """Mapping of account -> Position with settle-before-mutate semantics."""

    def __init__(self):
        self._positions: Dict[str, Position] = {}

    def __contains__(self, account: str) -> bool:
        return account in self._positions

    def __iter__(self) -> Iterator[Position]:
        return iter(self._positions.values())

    def get(self, account: str) -> Position:
        """Detached copy of an account's position (zero position if unknown)."""
        position = self._positions.get(account)
        if position is None:
            return Position(account=account)
        return copy.deepcopy(position)

    def _position(self, account: str) -> Position:
        position = self._positions.get(account)
        if position is None:
            position = Position(account=account)
            self._positions[account] = position
        return position

    def settle(self, account: str, pool: Pool) -> int:
        """Credit the reward ``account`` earned in an already-accrued ``pool``."""
        return settle_position(self._position(account), pool)

    def credit(self, account: str, pool: Pool, amount: int, tick: int) -> Position:
        """Record a deposit of ``amount`` into ``pool``."""
        position = self._position(account)
        settle_position(position, pool)

        position.balances[pool.pool_id] = checked_add(position.balance_of(pool.pool_id), amount)
        position.total_deposited = checked_add(position.total_deposited, amount)
        position.last_interaction_tick = tick
        pool.total_supply = checked_add(pool.total_supply, amount)
        return position

    def debit(self, account: str, pool: Pool, amount: int, tick: int) -> Position:
        """Record a withdrawal of ``amount`` from ``pool``."""
        position = self._position(account)
        available = position.balance_of(pool.pool_id)
        if available < amount:
            raise InsufficientBalance(
                f"Balance {available} in pool {pool.pool_id} is below {amount}",
                requested=amount,
                available=available,
            )
        settle_position(position, pool)

        position.balances[pool.pool_id] = available - amount
        position.total_withdrawn = checked_add(position.total_withdrawn, amount)
        position.last_interaction_tick = tick
        pool.total_supply -= amount
        return position

    def take_rewards(self, account: str, tick: int) -> int:
        """Zero an account's pending rewards and return the amount."""
        position = self._position(account)
        amount = position.pending_rewards
        if amount <= 0:
            raise NoRewards(f"No pending rewards for {account}")
        position.pending_rewards = 0
        position.last_interaction_tick = tick
        return amount

    def pools_of(self, account: str):
        """Ids of every pool ``account`` has ever held a balance in."""
        position = self._positions.get(account)
        if position is None:
            return []
        return sorted(position.balances)

    def total_balance(self, pool_id: int) -> int:
        """Sum of every account's balance in ``pool_id``."""
        return sum(position.balance_of(pool_id) for position in self._positions.values())
