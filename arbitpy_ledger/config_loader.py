"""
Configuration loading and normalization for the ledger engine.

Provides a centralized way to load, validate, and normalize configuration
files with proper defaults and read-only access.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from .config_schema import EngineSettings, validate_engine_config
from .constants import (
    DEFAULT_FLASH_LOAN_FEE_BPS,
    DEFAULT_PLATFORM_FEE_BPS,
    NATIVE_ASSET,
    StrategyType,
)
from .exceptions import ConfigurationError, ValidationError
from .utils import deep_merge


@dataclass(frozen=True)
class PoolSpec:
    """Normalized pool created at construction."""

    asset: str
    reward_rate: int
    active: bool = True


@dataclass(frozen=True)
class VenueSpec:
    """Normalized authorized venue."""

    address: str
    name: str


@dataclass(frozen=True)
class ObservabilityConfig:
    """Normalized observability configuration."""

    log_level: str = "INFO"
    metrics_enabled: bool = False
    metrics_port: int = 8000


@dataclass(frozen=True)
class EngineConfig:
    """Immutable runtime configuration object."""

    admin: str
    fee_recipient: str
    emergency_withdrawer: str
    name: str = "arbitpy-ledger"
    platform_fee_bps: int = DEFAULT_PLATFORM_FEE_BPS
    flash_loan_fee_bps: int = DEFAULT_FLASH_LOAN_FEE_BPS
    arbitrage_enabled: bool = True
    flash_loans_enabled: bool = True
    paused: bool = False
    reward_asset: str = NATIVE_ASSET
    create_native_pool: bool = True
    native_pool_reward_rate: int = 0
    pools: Tuple[PoolSpec, ...] = ()
    venues: Tuple[VenueSpec, ...] = ()
    strategies: Tuple[Tuple[StrategyType, str], ...] = ()
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)


def load_yaml_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load and parse YAML configuration file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to load config {config_path}: {e}")

    if config_dict is None:
        raise ConfigurationError(f"Empty configuration file: {config_path}")
    if not isinstance(config_dict, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

    return config_dict


def _normalize_observability_config(settings: EngineSettings) -> ObservabilityConfig:
    """Normalize observability configuration with defaults."""
    return ObservabilityConfig(
        log_level=settings.logging.level if settings.logging else "INFO",
        metrics_enabled=settings.metrics.enabled if settings.metrics else False,
        metrics_port=settings.metrics.port if settings.metrics else 8000,
    )


def normalize_settings(settings: EngineSettings) -> EngineConfig:
    """Convert validated settings into the frozen runtime configuration."""
    return EngineConfig(
        name=settings.name,
        admin=settings.roles.admin,
        fee_recipient=settings.roles.fee_recipient,
        emergency_withdrawer=settings.roles.emergency_withdrawer,
        platform_fee_bps=settings.fees.platform_fee_bps,
        flash_loan_fee_bps=settings.fees.flash_loan_fee_bps,
        arbitrage_enabled=settings.features.arbitrage_enabled,
        flash_loans_enabled=settings.features.flash_loans_enabled,
        paused=settings.features.paused,
        reward_asset=settings.reward_asset,
        create_native_pool=settings.create_native_pool,
        native_pool_reward_rate=settings.native_pool_reward_rate,
        pools=tuple(
            PoolSpec(asset=p.asset, reward_rate=p.reward_rate, active=p.active)
            for p in settings.pools
        ),
        venues=tuple(VenueSpec(address=v.address, name=v.name) for v in settings.venues),
        strategies=tuple(
            (StrategyType(strategy_type), venue)
            for strategy_type, venue in settings.strategies.items()
        ),
        observability=_normalize_observability_config(settings),
    )


def build_engine_config(config_dict: Dict[str, Any]) -> EngineConfig:
    """
    Validate and normalize a configuration dictionary.

    Raises:
        ValidationError: If the configuration fails schema validation
    """
    try:
        settings = validate_engine_config(config_dict)
    except PydanticValidationError as e:
        raise ValidationError(f"Configuration validation failed: {e}", details={"errors": e.errors()})
    except TypeError as e:
        raise ValidationError(f"Configuration validation failed: {e}")
    return normalize_settings(settings)


def load_engine_config(
    config_path: Union[str, Path], overrides: Optional[Dict[str, Any]] = None
) -> EngineConfig:
    """
    Load and normalize an engine configuration file.

    Args:
        config_path: Path to the YAML configuration file
        overrides: Values deep-merged over the file contents before validation

    Returns:
        Normalized and frozen engine configuration

    Raises:
        ConfigurationError: If the configuration cannot be loaded
        ValidationError: If the configuration fails schema validation
    """
    config_dict = load_yaml_config(config_path)
    if overrides:
        config_dict = deep_merge(config_dict, overrides)
    return build_engine_config(config_dict)


def get_default_config(
    admin: str = "admin",
    fee_recipient: str = "fee_recipient",
    emergency_withdrawer: str = "emergency_withdrawer",
    **kwargs,
) -> EngineConfig:
    """Get a default configuration for testing or paper runs."""
    return EngineConfig(
        admin=admin,
        fee_recipient=fee_recipient,
        emergency_withdrawer=emergency_withdrawer,
        **kwargs,
    )
