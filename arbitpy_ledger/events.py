"""
Result records emitted by the engine's entry points.

Events are immutable dataclasses. The engine buffers the events of a call and
only appends them to the EventLog once the call commits, so observers never
see events from an aborted call.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEvent:
    """Base class; ``sequence`` is assigned by the EventLog on commit."""

    account: str
    tick: int
    sequence: int = field(default=-1, compare=False)

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class LiquidityAdded(LedgerEvent):
    asset: str = ""
    amount: int = 0
    pool_id: int = 0


@dataclass(frozen=True)
class LiquidityRemoved(LedgerEvent):
    asset: str = ""
    amount: int = 0
    pool_id: int = 0


@dataclass(frozen=True)
class RewardsClaimed(LedgerEvent):
    amount: int = 0


@dataclass(frozen=True)
class ArbitrageExecuted(LedgerEvent):
    asset_in: str = ""
    asset_out: str = ""
    amount_in: int = 0
    profit: int = 0


@dataclass(frozen=True)
class FlashLoanExecuted(LedgerEvent):
    asset: str = ""
    amount: int = 0
    fee: int = 0


@dataclass(frozen=True)
class StrategyExecuted(LedgerEvent):
    strategy_type: str = ""
    input_amount: int = 0
    output_amount: int = 0


EventListener = Callable[[LedgerEvent], None]


class EventLog:
    """Append-only log of committed events with subscriber fan-out."""

    def __init__(self):
        self._events: List[LedgerEvent] = []
        self._listeners: List[EventListener] = []

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(self._events)

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def commit(self, events: List[LedgerEvent]) -> List[LedgerEvent]:
        """Append a committed call's events in order and notify listeners."""
        committed = []
        for event in events:
            stamped = replace(event, sequence=len(self._events))
            self._events.append(stamped)
            committed.append(stamped)

        for event in committed:
            for listener in list(self._listeners):
                try:
                    listener(event)
                except Exception as e:
                    # A failing observer must not undo a committed call
                    logger.error(f"Event listener failed on {event.name}: {e}")
        return committed

    def for_account(self, account: str, limit: Optional[int] = 10) -> List[LedgerEvent]:
        """An account's events, most recent first."""
        matching = [event for event in reversed(self._events) if event.account == account]
        if limit is not None:
            return matching[:limit]
        return matching

    def of_type(self, event_type: type) -> List[LedgerEvent]:
        return [event for event in self._events if isinstance(event, event_type)]

