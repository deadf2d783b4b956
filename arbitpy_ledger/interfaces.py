"""
Port interfaces consumed by the ledger engine.

The engine never moves funds or calls other contracts directly. It talks to a
value transfer port, an external call port and a tick provider, which are
lightweight protocols so the paper adapters, the web3 adapters and test
doubles can all be plugged in.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ValueTransferPort(Protocol):
    """Moves fungible assets in and out of the engine's custody.

    Failures are signalled by raising ``TransferError``. ``snapshot`` and
    ``revert`` let the engine discard every movement made by an aborted call;
    ``release`` drops a snapshot once its call has committed.
    """

    def transfer_in(self, asset: str, sender: str, amount: int) -> None:
        """Pull ``amount`` of ``asset`` from ``sender`` into custody."""
        ...

    def transfer_out(self, asset: str, recipient: str, amount: int) -> None:
        """Send ``amount`` of ``asset`` from custody to ``recipient``."""
        ...

    def balance_of(self, asset: str) -> int:
        """Get the custody balance of ``asset``."""
        ...

    def snapshot(self) -> Any:
        """Capture custody state and return an opaque snapshot id."""
        ...

    def revert(self, snapshot_id: Any) -> None:
        """Restore custody state captured by ``snapshot``."""
        ...

    def release(self, snapshot_id: Any) -> None:
        """Forget a snapshot whose call committed."""
        ...


@runtime_checkable
class ExternalCallPort(Protocol):
    """Invokes trading venues and flash-loan borrower callbacks.

    Failures are signalled by raising ``CallError``.
    """

    def invoke(self, venue: str, payload: bytes) -> int:
        """Call ``venue`` with opaque ``payload`` and return the decoded amount."""
        ...

    def invoke_callback(
        self, borrower: str, asset: str, amount: int, fee: int, data: bytes
    ) -> None:
        """Hand control to a flash-loan borrower."""
        ...


@runtime_checkable
class TickProvider(Protocol):
    """Protocol for the engine's notion of time (block height)."""

    def current_tick(self) -> int:
        """Get the current tick."""
        ...


class DeterministicTickProvider:
    """Manually driven tick source for tests, paper runs and scenarios."""

    def __init__(self, start_tick: int = 0):
        self._tick = start_tick

    def current_tick(self) -> int:
        """Get the current tick."""
        return self._tick

    def advance(self, ticks: int = 1) -> int:
        """Advance the clock by ``ticks`` and return the new tick."""
        if ticks < 0:
            raise ValueError("Ticks cannot move backwards")
        self._tick += ticks
        return self._tick

    def set_tick(self, tick: int) -> None:
        """Set the clock to a specific tick."""
        if tick < self._tick:
            raise ValueError("Ticks cannot move backwards")
        self._tick = tick
