"""
Owned state of one engine instance.

EngineState bundles every piece of mutable ledger state so it can be passed
explicitly into the settlement functions and snapshotted as a unit by the
engine's transaction boundary.
"""

from dataclasses import dataclass, field
from typing import List

from .events import LedgerEvent
from .guards import Capabilities
from .ledger_types import LedgerTotals
from .pool_registry import PoolRegistry
from .position_ledger import PositionLedger


@dataclass
class EngineState:
    capabilities: Capabilities
    pools: PoolRegistry = field(default_factory=PoolRegistry)
    positions: PositionLedger = field(default_factory=PositionLedger)
    totals: LedgerTotals = field(default_factory=LedgerTotals)
    # events of the call in progress, published on commit
    pending_events: List[LedgerEvent] = field(default_factory=list)

    def emit(self, event: LedgerEvent) -> None:
        self.pending_events.append(event)


def settle_account(state: EngineState, account: str, tick: int) -> int:
    """
    Accrue every pool ``account`` holds a balance in and settle its rewards.

    Returns:
        Total reward credited to the account
    """
    credited = 0
    for pool_id in state.positions.pools_of(account):
        pool = state.pools.accrue(pool_id, tick)
        credited += state.positions.settle(account, pool)
    return credited
