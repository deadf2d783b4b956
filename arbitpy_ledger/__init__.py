"""
ArbitPy ledger engine.

Accounting core of the ArbitPy platform: a multi-pool position ledger with
lazy reward accrual, atomic two-leg arbitrage settlement with fee splitting,
flash-loan settlement with a strict repayment invariant and strategy
execution, behind an admin/guard layer and an all-or-nothing transaction
boundary.
"""

from arbitpy_ledger.version import __version__

PROJECT_NAME = "arbitpy-ledger"
VERSION = __version__

# Export main components for easier imports
from arbitpy_ledger.config_loader import EngineConfig, get_default_config, load_engine_config
from arbitpy_ledger.constants import NATIVE_ASSET, NATIVE_POOL_ID, PRECISION, StrategyType
from arbitpy_ledger.engine import LedgerEngine
from arbitpy_ledger.interfaces import DeterministicTickProvider
from arbitpy_ledger.ledger_types import (
    ArbitrageIntent,
    ArbitrageResult,
    FlashLoanIntent,
    FlashLoanResult,
    PlatformStats,
    Pool,
    Position,
    StrategyIntent,
    StrategyResult,
)

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "LedgerEngine",
    "EngineConfig",
    "get_default_config",
    "load_engine_config",
    "DeterministicTickProvider",
    "NATIVE_ASSET",
    "NATIVE_POOL_ID",
    "PRECISION",
    "StrategyType",
    "ArbitrageIntent",
    "ArbitrageResult",
    "FlashLoanIntent",
    "FlashLoanResult",
    "StrategyIntent",
    "StrategyResult",
    "PlatformStats",
    "Pool",
    "Position",
]
