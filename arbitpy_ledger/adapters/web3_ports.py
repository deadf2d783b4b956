"""
Web3 adapters for running the engine's ports against an EVM chain.

The engine account must be unlocked on the node (dev chains such as anvil or
hardhat) and hold allowances for the tokens it pulls with transferFrom.
snapshot / revert use the dev-chain evm_snapshot and evm_revert methods, so the
transfer port can only roll back on anvil or hardhat. On a live chain a call
is atomic because the engine runs inside one contract transaction that
reverts as a whole.
"""

import logging
from typing import Any, Dict

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from ..constants import NATIVE_ASSET
from ..exceptions import CallError, TransferError

logger = logging.getLogger(__name__)

# ERC20 ABI (minimal)
ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "_to", "type": "address"},
            {"name": "_value", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "_from", "type": "address"},
            {"name": "_to", "type": "address"},
            {"name": "_value", "type": "uint256"},
        ],
        "name": "transferFrom",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
]

# Flash-loan receiver ABI (minimal)
FLASH_LOAN_RECEIVER_ABI = [
    {
        "constant": False,
        "inputs": [
            {"name": "asset", "type": "address"},
            {"name": "amount", "type": "uint256"},
            {"name": "fee", "type": "uint256"},
            {"name": "data", "type": "bytes"},
        ],
        "name": "executeOperation",
        "outputs": [],
        "type": "function",
    },
]

DEFAULT_RECEIPT_TIMEOUT = 120


def _wait_for_success(w3: Web3, tx_hash, timeout: int) -> Dict[str, Any]:
    """Wait for a receipt; returns it, or raises ValueError if the tx reverted."""
    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
    if receipt["status"] != 1:
        raise ValueError(f"Transaction {Web3.to_hex(tx_hash)} reverted")
    return receipt


class Web3ValueTransferPort:
    """Value transfer port over ERC-20 tokens and the native currency."""

    def __init__(self, w3: Web3, engine_address: str, receipt_timeout: int = DEFAULT_RECEIPT_TIMEOUT):
        self.w3 = w3
        self.engine_address = Web3.to_checksum_address(engine_address)
        self.receipt_timeout = receipt_timeout

    def _token(self, asset: str):
        return self.w3.eth.contract(address=Web3.to_checksum_address(asset), abi=ERC20_ABI)

    def transfer_in(self, asset: str, sender: str, amount: int) -> None:
        sender = Web3.to_checksum_address(sender)
        try:
            if asset == NATIVE_ASSET:
                tx_hash = self.w3.eth.send_transaction(
                    {"from": sender, "to": self.engine_address, "value": amount}
                )
            else:
                tx_hash = (
                    self._token(asset)
                    .functions.transferFrom(sender, self.engine_address, amount)
                    .transact({"from": self.engine_address})
                )
            _wait_for_success(self.w3, tx_hash, self.receipt_timeout)
        except (ContractLogicError, TimeExhausted, ValueError) as e:
            raise TransferError(
                f"Transfer of {amount} {asset} from {sender} failed: {e}",
                details={"asset": asset, "sender": sender, "amount": amount},
            ) from e

    def transfer_out(self, asset: str, recipient: str, amount: int) -> None:
        recipient = Web3.to_checksum_address(recipient)
        try:
            if asset == NATIVE_ASSET:
                tx_hash = self.w3.eth.send_transaction(
                    {"from": self.engine_address, "to": recipient, "value": amount}
                )
            else:
                tx_hash = (
                    self._token(asset)
                    .functions.transfer(recipient, amount)
                    .transact({"from": self.engine_address})
                )
            _wait_for_success(self.w3, tx_hash, self.receipt_timeout)
        except (ContractLogicError, TimeExhausted, ValueError) as e:
            raise TransferError(
                f"Transfer of {amount} {asset} to {recipient} failed: {e}",
                details={"asset": asset, "recipient": recipient, "amount": amount},
            ) from e

    def balance_of(self, asset: str) -> int:
        if asset == NATIVE_ASSET:
            return self.w3.eth.get_balance(self.engine_address)
        return self._token(asset).functions.balanceOf(self.engine_address).call()

    def snapshot(self) -> Any:
        """Take a dev-node snapshot; live nodes reject evm_snapshot with TransferError."""
        response = self.w3.provider.make_request("evm_snapshot", [])
        if "error" in response:
            raise TransferError(f"evm_snapshot failed: {response['error']}")
        return response["result"]

    def revert(self, snapshot_id: Any) -> None:
        response = self.w3.provider.make_request("evm_revert", [snapshot_id])
        if "error" in response or not response.get("result"):
            raise TransferError(f"evm_revert to {snapshot_id} failed: {response.get('error')}")
        logger.debug(f"Chain reverted to snapshot {snapshot_id}")

    def release(self, snapshot_id: Any) -> None:
        """
        Forget a committed call's snapshot.

        Dev nodes expose no RPC to discard a snapshot; an unreverted one is
        simply never used again, so nothing is sent to the node.
        """
        logger.debug(f"Released chain snapshot {snapshot_id}")


class Web3ExternalCallPort:
    """
    External call port over contract calls.

    A venue call is first simulated with eth_call to decode its uint256
    result, then sent as a transaction with the same calldata.
    """

    def __init__(self, w3: Web3, sender: str, receipt_timeout: int = DEFAULT_RECEIPT_TIMEOUT):
        self.w3 = w3
        self.sender = Web3.to_checksum_address(sender)
        self.receipt_timeout = receipt_timeout

    def invoke(self, venue: str, payload: bytes) -> int:
        tx = {"from": self.sender, "to": Web3.to_checksum_address(venue), "data": payload}
        try:
            raw = self.w3.eth.call(tx)
            amount = abi_decode(["uint256"], bytes(raw))[0]
            tx_hash = self.w3.eth.send_transaction(tx)
            _wait_for_success(self.w3, tx_hash, self.receipt_timeout)
        except (ContractLogicError, DecodingError, TimeExhausted, ValueError) as e:
            raise CallError(f"Call to venue {venue} failed: {e}") from e
        return amount

    def invoke_callback(self, borrower: str, asset: str, amount: int, fee: int, data: bytes) -> None:
        receiver = self.w3.eth.contract(
            address=Web3.to_checksum_address(borrower), abi=FLASH_LOAN_RECEIVER_ABI
        )
        try:
            tx_hash = receiver.functions.executeOperation(
                Web3.to_checksum_address(asset), amount, fee, data
            ).transact({"from": self.sender})
            _wait_for_success(self.w3, tx_hash, self.receipt_timeout)
        except (ContractLogicError, TimeExhausted, ValueError) as e:
            raise CallError(f"executeOperation on {borrower} failed: {e}") from e


class Web3BlockClock:
    """Tick provider reading the latest block number."""

    def __init__(self, w3: Web3):
        self.w3 = w3

    def current_tick(self) -> int:
        return self.w3.eth.block_number
