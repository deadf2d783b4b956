"""
Catalog of reward pools and their global accrual state.

Pools are appended with sequential ids and never removed; retiring a pool
means deactivating it. Capability checks live in the engine; the registry
only enforces data invariants.
"""

import logging
from typing import Iterator, List

from .accrual import accrue_pool
from .exceptions import InvalidInput, NotFound
from .ledger_types import Pool

logger = logging.getLogger(__name__)


class PoolRegistry:
    """Ordered collection of pools indexed by pool id."""

    def __init__(self):
        self._pools: List[Pool] = []

    def __len__(self) -> int:
        return len(self._pools)

    def __iter__(self) -> Iterator[Pool]:
        return iter(self._pools)

    def create(self, asset: str, reward_rate: int, tick: int) -> Pool:
        """Append a new active pool and return it."""
        if not asset:
            raise InvalidInput("Pool asset is required")
        if not isinstance(reward_rate, int) or reward_rate < 0:
            raise InvalidInput(f"Reward rate must be a non-negative integer: {reward_rate!r}")

        pool = Pool(
            pool_id=len(self._pools),
            asset=asset,
            reward_rate_per_block=reward_rate,
            last_accrual_tick=tick,
        )
        self._pools.append(pool)
        logger.debug(f"Pool {pool.pool_id} created for {asset} at rate {reward_rate}")
        return pool

    def get(self, pool_id: int) -> Pool:
        """Get a pool by id, raising NotFound for unknown ids."""
        if not isinstance(pool_id, int) or isinstance(pool_id, bool):
            raise NotFound(f"Unknown pool id: {pool_id!r}", key=pool_id)
        if pool_id < 0 or pool_id >= len(self._pools):
            raise NotFound(f"Unknown pool id: {pool_id}", key=pool_id)
        return self._pools[pool_id]

    def accrue(self, pool_id: int, tick: int) -> Pool:
        """Accrue one pool to ``tick`` and return it."""
        pool = self.get(pool_id)
        accrue_pool(pool, tick)
        return pool

    def accrue_all(self, tick: int) -> None:
        for pool in self._pools:
            accrue_pool(pool, tick)

    def set_reward_rate(self, pool_id: int, reward_rate: int, tick: int) -> Pool:
        """Accrue at the old rate up to ``tick``, then switch rates."""
        if not isinstance(reward_rate, int) or reward_rate < 0:
            raise InvalidInput(f"Reward rate must be a non-negative integer: {reward_rate!r}")
        pool = self.accrue(pool_id, tick)
        pool.reward_rate_per_block = reward_rate
        return pool

    def set_active(self, pool_id: int, active: bool, tick: int) -> Pool:
        """Toggle a pool; rewards up to ``tick`` are accrued under the old state."""
        pool = self.accrue(pool_id, tick)
        pool.active = bool(active)
        return pool

    def pools_for_asset(self, asset: str) -> List[Pool]:
        return [pool for pool in self._pools if pool.asset == asset]
