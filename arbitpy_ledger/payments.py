"""
Custody movements performed on behalf of the entry points.

Translates port-level TransferError into the engine's TransferFailed and
enforces the intake rules for payable entry points.
"""

from .constants import NATIVE_ASSET
from .exceptions import AmountMismatch, TransferError, TransferFailed
from .interfaces import ValueTransferPort


def collect_payment(
    transfers: ValueTransferPort, asset: str, payer: str, amount: int, value: int = 0
) -> int:
    """
    Take ``amount`` of ``asset`` from ``payer`` into custody.

    Native asset: the attached ``value`` must equal ``amount``.
    Token: no native value may be attached, and the custody balance must grow
    by exactly ``amount``.

    Returns:
        Amount received
    """
    if asset == NATIVE_ASSET:
        if value != amount:
            raise AmountMismatch(
                f"Attached value {value} does not match amount {amount}",
                expected=amount,
                actual=value,
            )
        _transfer_in(transfers, asset, payer, amount)
        return amount

    if value != 0:
        raise AmountMismatch(
            f"Native value {value} attached to a {asset} payment",
            expected=0,
            actual=value,
        )

    before = transfers.balance_of(asset)
    _transfer_in(transfers, asset, payer, amount)
    received = transfers.balance_of(asset) - before
    if received != amount:
        raise AmountMismatch(
            f"Custody received {received} of {asset}, expected {amount}",
            expected=amount,
            actual=received,
        )
    return received


def pay_out(transfers: ValueTransferPort, asset: str, recipient: str, amount: int) -> None:
    """Send ``amount`` of ``asset`` from custody; zero amounts are skipped."""
    if amount == 0:
        return
    try:
        transfers.transfer_out(asset, recipient, amount)
    except TransferError as e:
        raise TransferFailed(
            f"Transfer of {amount} {asset} to {recipient} failed: {e}",
            asset=asset,
            amount=amount,
            details={"recipient": recipient},
        ) from e


def _transfer_in(transfers: ValueTransferPort, asset: str, payer: str, amount: int) -> None:
    try:
        transfers.transfer_in(asset, payer, amount)
    except TransferError as e:
        raise TransferFailed(
            f"Transfer of {amount} {asset} from {payer} failed: {e}",
            asset=asset,
            amount=amount,
            details={"payer": payer},
        ) from e
