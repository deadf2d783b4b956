"""Tests for the exceptions module."""

import pytest
from arbitpy_ledger.exceptions import (
    AmountMismatch,
    AmountOverflow,
    ArbitPyLedgerError,
    CallbackFailed,
    CallError,
    ConfigurationError,
    FeatureDisabled,
    FeeTooHigh,
    InsufficientBalance,
    InsufficientLiquidity,
    InvalidInput,
    LegFailed,
    LoanNotRepaid,
    NoRewards,
    NotFound,
    OperationPaused,
    PortError,
    ReentrantCall,
    SlippageExceeded,
    TransferError,
    TransferFailed,
    Unauthorized,
    UnauthorizedVenue,
    ValidationError,
)


def test_base_exception():
    """Test the base exception class."""
    error = ArbitPyLedgerError("Test error")
    assert str(error) == "Test error"
    assert error.details == {}
    assert error.kind == "error"

    error_with_details = ArbitPyLedgerError("Test error", {"key": "value"})
    assert error_with_details.details == {"key": "value"}


def test_configuration_error():
    error = ConfigurationError("Config error", {"config_file": "test.yaml"})
    assert str(error) == "Config error"
    assert error.details["config_file"] == "test.yaml"
    assert isinstance(error, ArbitPyLedgerError)


def test_unauthorized_carries_role():
    error = Unauthorized("nope", caller="mallory", required_role="admin")
    assert error.caller == "mallory"
    assert error.required_role == "admin"
    assert error.kind == "unauthorized"


def test_unauthorized_venue_is_unauthorized():
    error = UnauthorizedVenue("Venue not allowed", venue="0xdead")
    assert error.venue == "0xdead"
    assert error.required_role == "authorized_venue"
    assert isinstance(error, Unauthorized)


def test_reentrant_call_is_unauthorized():
    error = ReentrantCall("busy", operation="deposit", active_operation="flash_loan")
    assert error.operation == "deposit"
    assert error.active_operation == "flash_loan"
    assert isinstance(error, Unauthorized)
    assert error.kind == "reentrant_call"


def test_amount_overflow_is_invalid_input():
    error = AmountOverflow("too big", operands=(2**255, 4))
    assert error.operands == (2**255, 4)
    assert isinstance(error, InvalidInput)


def test_insufficient_liquidity_is_insufficient_balance():
    error = InsufficientLiquidity("short", requested=10, available=3)
    assert error.requested == 10
    assert error.available == 3
    assert isinstance(error, InsufficientBalance)


def test_feature_disabled_is_operation_paused():
    error = FeatureDisabled("off", operation="flash_loan")
    assert error.operation == "flash_loan"
    assert isinstance(error, OperationPaused)


def test_settlement_errors_carry_context():
    assert AmountMismatch("m", expected=5, actual=4).actual == 4
    assert TransferFailed("t", asset="WETH", amount=7).asset == "WETH"
    assert LegFailed("l", venue="v", leg="A").leg == "A"
    assert SlippageExceeded("s", minimum=10, actual=9).minimum == 10
    assert LoanNotRepaid("r", expected=100, actual=99).expected == 100
    assert CallbackFailed("c", borrower="bob").borrower == "bob"
    assert FeeTooHigh("f", fee_bps=1001, max_bps=1000).fee_bps == 1001
    assert NotFound("n", key=3).key == 3


def test_port_errors():
    assert isinstance(TransferError("x"), PortError)
    assert isinstance(CallError("x"), PortError)
    assert TransferError("x").kind != CallError("x").kind


def test_kinds_are_unique():
    exceptions = [
        ConfigurationError,
        ValidationError,
        InvalidInput,
        AmountOverflow,
        Unauthorized,
        UnauthorizedVenue,
        ReentrantCall,
        NotFound,
        InsufficientBalance,
        InsufficientLiquidity,
        AmountMismatch,
        TransferFailed,
        LegFailed,
        SlippageExceeded,
        LoanNotRepaid,
        CallbackFailed,
        FeeTooHigh,
        OperationPaused,
        FeatureDisabled,
        NoRewards,
        PortError,
        TransferError,
        CallError,
    ]
    kinds = [exc_class.kind for exc_class in exceptions]
    assert len(kinds) == len(set(kinds))


@pytest.mark.parametrize(
    "exc_class",
    [ConfigurationError, ValidationError, InvalidInput, NoRewards, PortError],
)
def test_exception_inheritance(exc_class):
    """All custom exceptions inherit from the base exception."""
    instance = exc_class("test message")
    assert isinstance(instance, ArbitPyLedgerError)
    assert isinstance(instance, Exception)
