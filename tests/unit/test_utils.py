"""
Unit tests for arbitpy_ledger.utils module.

Tests unit conversion, JSON and dictionary helpers.
"""

import json
import logging
from decimal import Decimal

import pytest

from arbitpy_ledger.constants import StrategyType
from arbitpy_ledger.ledger_types import PlatformStats
from arbitpy_ledger.utils import (
    basis_points_of,
    deep_merge,
    format_units,
    get_logger,
    parse_units,
    safe_json_dump,
)


class TestUnitConversion:
    """Test raw/display amount conversion."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            (0, "0"),
            (10**18, "1"),
            (1500000000000000000, "1.5"),
            (1, "0.000000000000000001"),
            (123 * 10**18, "123"),
        ],
    )
    def test_format_units(self, amount, expected):
        assert format_units(amount) == expected

    def test_format_units_decimals(self):
        assert format_units(1_500_000, decimals=6) == "1.5"

    def test_parse_units(self):
        assert parse_units("1.5") == 1500000000000000000
        assert parse_units("0") == 0
        assert parse_units(Decimal("2")) == 2 * 10**18
        assert parse_units("1.5", decimals=6) == 1_500_000

    def test_parse_units_int_is_raw(self):
        assert parse_units(12345) == 12345

    @pytest.mark.parametrize("value", ["-1", -1, "abc", "1e-19", True, "inf"])
    def test_parse_units_rejects(self, value):
        with pytest.raises(ValueError):
            parse_units(value)

    def test_basis_points_of(self):
        assert basis_points_of(10_000, 30) == 30
        assert basis_points_of(999, 1) == 0


class TestJsonUtils:
    """Test JSON utilities."""

    def test_safe_json_dump(self):
        """Test safe JSON serialization."""
        data = {"test": "value", "number": 42}
        json_str = safe_json_dump(data)

        assert json.loads(json_str) == data

    def test_safe_json_dump_ledger_types(self):
        stats = PlatformStats(
            total_value_locked=1, total_volume=2, total_arbitrage_profit=3, total_pool_count=4
        )
        data = {"stats": stats, "type": StrategyType.COMPOUND, "payload": b"\x01\x02"}

        loaded = json.loads(safe_json_dump(data))
        assert loaded["stats"]["total_pool_count"] == 4
        assert loaded["type"] == "COMPOUND"
        assert loaded["payload"] == "0x0102"


class TestDictUtils:
    """Test dictionary utilities."""

    def test_deep_merge(self):
        """Test deep dictionary merging."""
        base = {"a": 1, "b": {"c": 2, "d": 3}}
        update = {"b": {"d": 4, "e": 5}, "f": 6}

        result = deep_merge(base, update)

        assert result == {"a": 1, "b": {"c": 2, "d": 4, "e": 5}, "f": 6}
        assert base == {"a": 1, "b": {"c": 2, "d": 3}}


class TestLoggingUtils:
    """Test logging utilities."""

    def test_get_logger(self):
        logger = get_logger("arbitpy_ledger.tests.plain")
        assert isinstance(logger, logging.Logger)
        assert logger.handlers

    def test_get_logger_with_context(self):
        adapter = get_logger("arbitpy_ledger.tests.context", extra={"engine": "paper"})
        assert isinstance(adapter, logging.LoggerAdapter)
        assert adapter.extra == {"extra_engine": "paper"}
