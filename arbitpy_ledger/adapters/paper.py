"""
Paper adapters: in-memory custody, venues and borrowers.

Used by the test suite, the scenario runner and dry runs. Balances are plain
integers in the asset's smallest unit; nothing leaves the process.
"""

import copy
import logging
from itertools import count
from typing import Callable, Dict, Optional, Tuple, Union

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError

from ..constants import BPS_DENOMINATOR
from ..exceptions import CallError, TransferError

logger = logging.getLogger(__name__)

VenueHandler = Callable[[bytes], Union[int, bytes]]
BorrowerHandler = Callable[[str, int, int, bytes], None]


def encode_amount(amount: int) -> bytes:
    """ABI-encode a single uint256, the payload format of paper venues."""
    return abi_encode(["uint256"], [amount])


def decode_amount(data: bytes) -> int:
    """Decode a single ABI-encoded uint256."""
    return abi_decode(["uint256"], data)[0]


class InMemoryCustody:
    """
    Multi-asset token ledger keyed by (asset, holder).

    Implements the value transfer port for ``engine_address``. A per-asset
    transfer fee can be set to model fee-on-transfer tokens: the recipient
    receives ``amount`` minus the fee and the fee is burned.
    """

    def __init__(self, engine_address: str = "engine"):
        self.engine_address = engine_address
        self._balances: Dict[Tuple[str, str], int] = {}
        self._transfer_fee_bps: Dict[str, int] = {}
        self._snapshots: Dict[int, Dict[Tuple[str, str], int]] = {}
        self._snapshot_ids = count(1)

    # Ledger

    def mint(self, asset: str, holder: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Cannot mint a negative amount: {amount}")
        key = (asset, holder)
        self._balances[key] = self._balances.get(key, 0) + amount

    def balance(self, asset: str, holder: str) -> int:
        return self._balances.get((asset, holder), 0)

    def set_transfer_fee(self, asset: str, fee_bps: int) -> None:
        self._transfer_fee_bps[asset] = fee_bps

    def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> int:
        """
        Move ``amount`` from ``sender`` to ``recipient``.

        Returns:
            Amount credited to the recipient

        Raises:
            TransferError: If the amount is invalid or the sender is short
        """
        if not isinstance(amount, int) or amount < 0:
            raise TransferError(f"Invalid transfer amount: {amount!r}")
        available = self.balance(asset, sender)
        if available < amount:
            raise TransferError(
                f"{sender} holds {available} {asset}, cannot send {amount}",
                details={"asset": asset, "sender": sender, "amount": amount},
            )

        fee = amount * self._transfer_fee_bps.get(asset, 0) // BPS_DENOMINATOR
        received = amount - fee
        self._balances[(asset, sender)] = available - amount
        self._balances[(asset, recipient)] = self.balance(asset, recipient) + received
        return received

    # Value transfer port

    def transfer_in(self, asset: str, sender: str, amount: int) -> None:
        self.transfer(asset, sender, self.engine_address, amount)

    def transfer_out(self, asset: str, recipient: str, amount: int) -> None:
        self.transfer(asset, self.engine_address, recipient, amount)

    def balance_of(self, asset: str) -> int:
        return self.balance(asset, self.engine_address)

    def snapshot(self) -> int:
        snapshot_id = next(self._snapshot_ids)
        self._snapshots[snapshot_id] = copy.deepcopy(self._balances)
        return snapshot_id

    def revert(self, snapshot_id: int) -> None:
        """Restore balances captured by ``snapshot``; later snapshots are dropped."""
        if snapshot_id not in self._snapshots:
            raise TransferError(f"Unknown snapshot id: {snapshot_id}")
        self._balances = self._snapshots[snapshot_id]
        for stale in [s for s in self._snapshots if s >= snapshot_id]:
            del self._snapshots[stale]

    def release(self, snapshot_id: int) -> None:
        """Drop a snapshot without restoring it."""
        if self._snapshots.pop(snapshot_id, None) is None:
            raise TransferError(f"Unknown snapshot id: {snapshot_id}")

    @property
    def open_snapshots(self) -> int:
        return len(self._snapshots)


class InMemoryCallPort:
    """
    External call port dispatching to registered Python handlers.

    Venue handlers receive the payload and return either an int or the
    ABI-encoded uint256 a contract would return. Unknown targets raise
    CallError.
    """

    def __init__(self):
        self._venues: Dict[str, VenueHandler] = {}
        self._borrowers: Dict[str, BorrowerHandler] = {}
        self.call_count = 0

    def register_venue(self, venue: str, handler: VenueHandler) -> None:
        self._venues[venue] = handler

    def register_borrower(self, borrower: str, handler: BorrowerHandler) -> None:
        self._borrowers[borrower] = handler

    def invoke(self, venue: str, payload: bytes) -> int:
        handler = self._venues.get(venue)
        if handler is None:
            raise CallError(f"No contract at venue {venue}")
        self.call_count += 1
        result = handler(payload)
        if isinstance(result, (bytes, bytearray)):
            try:
                return decode_amount(bytes(result))
            except DecodingError as e:
                raise CallError(f"Venue {venue} returned undecodable data: {e}")
        return result

    def invoke_callback(self, borrower: str, asset: str, amount: int, fee: int, data: bytes) -> None:
        handler = self._borrowers.get(borrower)
        if handler is None:
            raise CallError(f"No flash-loan receiver at {borrower}")
        self.call_count += 1
        handler(asset, amount, fee, data)


class PaperVenue:
    """
    Fixed-rate swap venue.

    The payload is the ABI-encoded input amount. The venue pulls that amount
    of ``input_asset`` from the engine's custody and credits
    ``amount * rate_bps / 10000`` of ``output_asset`` back from its own
    inventory, returning the ABI-encoded output amount.
    """

    def __init__(
        self,
        custody: InMemoryCustody,
        address: str,
        input_asset: str,
        output_asset: str,
        rate_bps: int,
    ):
        self.custody = custody
        self.address = address
        self.input_asset = input_asset
        self.output_asset = output_asset
        self.rate_bps = rate_bps

    def quote(self, amount_in: int) -> int:
        return amount_in * self.rate_bps // BPS_DENOMINATOR

    def __call__(self, payload: bytes) -> bytes:
        try:
            amount_in = decode_amount(payload)
        except DecodingError as e:
            raise CallError(f"Venue {self.address} could not decode payload: {e}")

        amount_out = self.quote(amount_in)
        engine = self.custody.engine_address
        try:
            self.custody.transfer(self.input_asset, engine, self.address, amount_in)
            self.custody.transfer(self.output_asset, self.address, engine, amount_out)
        except TransferError as e:
            raise CallError(f"Swap on {self.address} reverted: {e}") from e

        logger.debug(f"{self.address}: {amount_in} {self.input_asset} -> {amount_out} {self.output_asset}")
        return encode_amount(amount_out)


class PaperBorrower:
    """
    Flash-loan receiver that repays principal plus fee.

    ``shortfall`` is withheld from the repayment; ``on_loan`` runs before
    repaying with the borrowed funds in hand.
    """

    def __init__(
        self,
        custody: InMemoryCustody,
        address: str,
        shortfall: int = 0,
        on_loan: Optional[Callable[[str, int, int, bytes], None]] = None,
    ):
        self.custody = custody
        self.address = address
        self.shortfall = shortfall
        self.on_loan = on_loan
        self.loans_received = 0

    def __call__(self, asset: str, amount: int, fee: int, data: bytes) -> None:
        self.loans_received += 1
        if self.on_loan is not None:
            self.on_loan(asset, amount, fee, data)

        repayment = max(0, amount + fee - self.shortfall)
        try:
            self.custody.transfer(asset, self.address, self.custody.engine_address, repayment)
        except TransferError as e:
            raise CallError(f"Borrower {self.address} could not repay: {e}") from e
