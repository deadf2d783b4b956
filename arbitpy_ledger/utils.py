"""
Common utilities and helper functions for the ArbitPy ledger engine.

This module provides centralized helpers for unit conversion between raw
integer amounts and display values, JSON serialization of ledger records,
dictionary merging for configuration overrides, and logger construction.
"""

import json
import logging
from dataclasses import asdict, is_dataclass
from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Any, Dict, Optional, Union

from .constants import DISPLAY_DECIMALS


# Unit utilities
def format_units(amount: int, decimals: int = DISPLAY_DECIMALS) -> str:
    """
    Render a raw integer amount as a decimal string.

    Args:
        amount: Amount in the asset's smallest unit
        decimals: Number of decimals of the asset

    Returns:
        Normalized decimal string (e.g. 1500000000000000000 -> "1.5")
    """
    with localcontext() as ctx:
        ctx.prec = 100
        text = format(Decimal(amount).scaleb(-decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def parse_units(value: Union[int, str, Decimal], decimals: int = DISPLAY_DECIMALS) -> int:
    """
    Convert a display value into a raw integer amount.

    Integers are taken as raw amounts already; strings and Decimals are read
    as display values and scaled by ``decimals``.

    Raises:
        ValueError: If the value is negative, malformed or has more precision
            than the asset supports
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Amount cannot be negative: {value}")
        return value

    try:
        with localcontext() as ctx:
            ctx.prec = 100
            scaled = Decimal(str(value).strip()).scaleb(decimals)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")

    if not scaled.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    if scaled < 0:
        raise ValueError(f"Amount cannot be negative: {value}")
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {value} has more than {decimals} decimals")
    return int(scaled)


def basis_points_of(amount: int, bps: int) -> int:
    """Integer share of ``amount`` at ``bps`` basis points, rounded down."""
    return amount * bps // 10_000


# JSON utilities
def safe_json_dump(data: Any, **kwargs) -> str:
    """
    Serialize data to JSON with sensible defaults.

    Args:
        data: Data to serialize
        **kwargs: Additional arguments to json.dumps

    Returns:
        JSON string
    """
    defaults = {"ensure_ascii": False, "indent": 2, "default": _json_default_handler}
    defaults.update(kwargs)
    return json.dumps(data, **defaults)


def _json_default_handler(obj: Any) -> Any:
    """Default JSON serialization handler for ledger types."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, bytes):
        return "0x" + obj.hex()
    elif isinstance(obj, Decimal):
        return str(obj)
    else:
        return str(obj)


# Dictionary utilities
def deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        update: Dictionary to merge into base

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in update.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


# Logging utilities
def get_logger(
    name: str,
    level: Union[str, int] = logging.INFO,
    extra: Optional[Dict[str, Any]] = None,
) -> logging.Logger:
    """
    Get a structured logger with consistent formatting and extra context.

    Args:
        name: Logger name (typically __name__)
        level: Logging level
        extra: Additional context fields to include in all log messages

    Returns:
        Configured logger (a LoggerAdapter when extra context is given)
    """
    logger = logging.getLogger(name)

    if logger.level == logging.NOTSET:
        logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        format_str = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

        if extra:
            extra_fields = " | ".join([f"{k}=%(extra_{k})s" for k in extra.keys()])
            format_str = format_str.replace(
                " | %(message)s", f" | {extra_fields} | %(message)s"
            )

        handler.setFormatter(logging.Formatter(format_str, datefmt="%H:%M:%S"))
        logger.addHandler(handler)

    if extra:
        return logging.LoggerAdapter(logger, {"extra_" + k: v for k, v in extra.items()})

    return logger
