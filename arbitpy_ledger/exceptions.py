"""
Exception hierarchy for the ArbitPy ledger engine.

Every failure of an entry point is reported with a specific exception type so
callers can discriminate causes. Each type carries a stable ``kind`` string
used in logs and metrics.
"""

from typing import Optional, Dict, Any


class ArbitPyLedgerError(Exception):
    """Base exception for all ledger engine errors."""

    kind = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(ArbitPyLedgerError):
    """Raised when there are configuration-related issues."""

    kind = "configuration"


class ValidationError(ArbitPyLedgerError):
    """Raised when validation of a configuration document fails."""

    kind = "validation"


class InvalidInput(ArbitPyLedgerError):
    """Raised for zero amounts, equal assets and other malformed input."""

    kind = "invalid_input"


class AmountOverflow(InvalidInput):
    """Raised when an intermediate amount would leave the uint256 range."""

    kind = "amount_overflow"

    def __init__(
        self,
        message: str,
        operands: Optional[tuple] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.operands = operands


class Unauthorized(ArbitPyLedgerError):
    """Raised when the caller lacks the capability an operation requires."""

    kind = "unauthorized"

    def __init__(
        self,
        message: str,
        caller: Optional[str] = None,
        required_role: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.caller = caller
        self.required_role = required_role


class UnauthorizedVenue(Unauthorized):
    """Raised when a venue is not on the authorized allow-list."""

    kind = "unauthorized_venue"

    def __init__(
        self,
        message: str,
        venue: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, required_role="authorized_venue", details=details)
        self.venue = venue


class ReentrantCall(Unauthorized):
    """Raised when an entry point is entered while another is in progress."""

    kind = "reentrant_call"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        active_operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)
        self.operation = operation
        self.active_operation = active_operation


class NotFound(ArbitPyLedgerError):
    """Raised when a pool id (or other keyed entity) does not exist."""

    kind = "not_found"

    def __init__(
        self,
        message: str,
        key: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.key = key


class InsufficientBalance(ArbitPyLedgerError):
    """Raised when a position holds less than the requested amount."""

    kind = "insufficient_balance"

    def __init__(
        self,
        message: str,
        requested: Optional[int] = None,
        available: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.requested = requested
        self.available = available


class InsufficientLiquidity(InsufficientBalance):
    """Raised when custody holds less than a requested flash loan."""

    kind = "insufficient_liquidity"


class AmountMismatch(ArbitPyLedgerError):
    """Raised when the declared amount differs from what actually arrived."""

    kind = "amount_mismatch"

    def __init__(
        self,
        message: str,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.expected = expected
        self.actual = actual


class TransferFailed(ArbitPyLedgerError):
    """Raised when the value transfer port rejects a movement of funds."""

    kind = "transfer_failed"

    def __init__(
        self,
        message: str,
        asset: Optional[str] = None,
        amount: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.asset = asset
        self.amount = amount


class LegFailed(ArbitPyLedgerError):
    """Raised when a venue leg reverts or returns nothing."""

    kind = "leg_failed"

    def __init__(
        self,
        message: str,
        venue: Optional[str] = None,
        leg: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.venue = venue
        self.leg = leg


class SlippageExceeded(ArbitPyLedgerError):
    """Raised when a venue returns less than the caller's minimum."""

    kind = "slippage_exceeded"

    def __init__(
        self,
        message: str,
        minimum: Optional[int] = None,
        actual: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.minimum = minimum
        self.actual = actual


class LoanNotRepaid(ArbitPyLedgerError):
    """Raised when custody is short of principal plus fee after a flash loan."""

    kind = "loan_not_repaid"

    def __init__(
        self,
        message: str,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.expected = expected
        self.actual = actual


class CallbackFailed(ArbitPyLedgerError):
    """Raised when a flash-loan borrower callback reverts."""

    kind = "callback_failed"

    def __init__(
        self,
        message: str,
        borrower: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.borrower = borrower


class FeeTooHigh(ArbitPyLedgerError):
    """Raised when a fee exceeds MAX_FEE_BPS."""

    kind = "fee_too_high"

    def __init__(
        self,
        message: str,
        fee_bps: Optional[int] = None,
        max_bps: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.fee_bps = fee_bps
        self.max_bps = max_bps


class OperationPaused(ArbitPyLedgerError):
    """Raised when the engine is paused."""

    kind = "operation_paused"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.operation = operation


class FeatureDisabled(OperationPaused):
    """Raised when arbitrage or flash loans are switched off."""

    kind = "feature_disabled"


class NoRewards(ArbitPyLedgerError):
    """Raised when a claim finds nothing to pay out."""

    kind = "no_rewards"


class PortError(ArbitPyLedgerError):
    """Base class for failures signalled by an external port."""

    kind = "port_error"


class TransferError(PortError):
    """Signalled by a value transfer port when a movement cannot happen."""

    kind = "transfer_error"


class CallError(PortError):
    """Signalled by an external call port when the target reverts."""

    kind = "call_error"
