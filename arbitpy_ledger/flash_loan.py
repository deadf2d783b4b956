"""
Flash-loan settlement with a strict repayment invariant.

The borrower receives ``amount`` and must return ``amount + fee`` to custody
before its callback returns. Repayment is checked on the custody balance:
``balance_after >= balance_before + fee``.
"""

import logging

from .accrual import checked_add, fee_for
from .events import FlashLoanExecuted
from .exceptions import CallError, CallbackFailed, InsufficientLiquidity, InvalidInput, LoanNotRepaid
from .guards import require_flash_loans_enabled
from .interfaces import ExternalCallPort, ValueTransferPort
from .ledger_types import FlashLoanIntent, FlashLoanResult
from .payments import pay_out
from .state import EngineState

logger = logging.getLogger(__name__)


def settle_flash_loan(
    state: EngineState,
    transfers: ValueTransferPort,
    calls: ExternalCallPort,
    caller: str,
    intent: FlashLoanIntent,
    tick: int,
) -> FlashLoanResult:
    require_flash_loans_enabled(state.capabilities)
    if not isinstance(intent.amount, int) or intent.amount <= 0:
        raise InvalidInput(f"Loan amount must be positive: {intent.amount!r}")

    balance_before = transfers.balance_of(intent.asset)
    if balance_before < intent.amount:
        raise InsufficientLiquidity(
            f"Custody holds {balance_before} {intent.asset}, loan needs {intent.amount}",
            requested=intent.amount,
            available=balance_before,
        )

    fee = fee_for(intent.amount, state.capabilities.flash_loan_fee_bps)
    required = checked_add(balance_before, fee)

    pay_out(transfers, intent.asset, caller, intent.amount)

    try:
        calls.invoke_callback(caller, intent.asset, intent.amount, fee, intent.data)
    except CallError as e:
        raise CallbackFailed(f"Flash-loan callback of {caller} reverted: {e}", borrower=caller) from e

    balance_after = transfers.balance_of(intent.asset)
    if balance_after < required:
        raise LoanNotRepaid(
            f"Custody holds {balance_after} {intent.asset} after loan, expected at least {required}",
            expected=required,
            actual=balance_after,
        )

    state.emit(
        FlashLoanExecuted(
            account=caller,
            tick=tick,
            asset=intent.asset,
            amount=intent.amount,
            fee=fee,
        )
    )
    logger.debug(f"Flash loan of {intent.amount} {intent.asset} to {caller} repaid with fee {fee}")
    return FlashLoanResult(amount=intent.amount, fee=fee)
