"""
Configuration schema validation using Pydantic
"""

from pathlib import Path
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator
from web3 import Web3

from .constants import (
    DEFAULT_FLASH_LOAN_FEE_BPS,
    DEFAULT_PLATFORM_FEE_BPS,
    MAX_FEE_BPS,
    NATIVE_ASSET,
    StrategyType,
)


def checksum_address(value: str) -> str:
    """Validate an address string and return its checksummed form."""
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValueError(f"Invalid address: {value!r}")
    return Web3.to_checksum_address(value)


class RolesConfig(BaseModel):
    """Capability holders"""

    admin: str = Field(description="Admin address (deployer)")
    fee_recipient: str = Field(description="Receiver of platform fees")
    emergency_withdrawer: str = Field(description="Incident response identity")

    @field_validator("admin", "fee_recipient", "emergency_withdrawer")
    @classmethod
    def validate_address(cls, v):
        return checksum_address(v)

    model_config = {"extra": "forbid"}


class FeesConfig(BaseModel):
    """Platform and flash-loan fees in basis points"""

    platform_fee_bps: int = Field(
        default=DEFAULT_PLATFORM_FEE_BPS, ge=0, le=MAX_FEE_BPS, description="Arbitrage profit fee"
    )
    flash_loan_fee_bps: int = Field(
        default=DEFAULT_FLASH_LOAN_FEE_BPS, ge=0, le=MAX_FEE_BPS, description="Flash-loan fee"
    )

    model_config = {"extra": "forbid"}


class FeaturesConfig(BaseModel):
    """Initial state of the feature switches"""

    arbitrage_enabled: bool = True
    flash_loans_enabled: bool = True
    paused: bool = False

    model_config = {"extra": "forbid"}


class PoolConfig(BaseModel):
    """A pool created at construction time"""

    asset: str = Field(description="Asset address (zero address for native)")
    reward_rate: int = Field(ge=0, description="Reward units per tick")
    active: bool = True

    @field_validator("asset")
    @classmethod
    def validate_asset(cls, v):
        return checksum_address(v)

    model_config = {"extra": "forbid"}


class VenueConfig(BaseModel):
    """An authorized venue / router"""

    address: str
    name: str = Field(min_length=1, max_length=100)

    @field_validator("address")
    @classmethod
    def validate_venue_address(cls, v):
        return checksum_address(v)

    model_config = {"extra": "forbid"}


class MetricsConfig(BaseModel):
    """Metrics server configuration"""

    enabled: bool = False
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics server port")

    model_config = {"extra": "forbid"}


class LoggingConfig(BaseModel):
    """Logging configuration"""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    model_config = {"extra": "forbid"}


class EngineSettings(BaseModel):
    """Complete ledger engine configuration schema"""

    name: str = Field(default="arbitpy-ledger", min_length=1, max_length=100)
    roles: RolesConfig
    fees: FeesConfig = Field(default_factory=FeesConfig)
    features: FeaturesConfig = Field(default_factory=FeaturesConfig)

    reward_asset: str = Field(default=NATIVE_ASSET, description="Asset rewards are paid in")
    create_native_pool: bool = True
    native_pool_reward_rate: int = Field(default=0, ge=0)
    pools: List[PoolConfig] = Field(default_factory=list)

    venues: List[VenueConfig] = Field(default_factory=list)
    # strategy type -> venue address
    strategies: Dict[str, str] = Field(default_factory=dict)

    logging: Optional[LoggingConfig] = None
    metrics: Optional[MetricsConfig] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Engine name cannot be empty")
        return v.strip()

    @field_validator("reward_asset")
    @classmethod
    def validate_reward_asset(cls, v):
        return checksum_address(v)

    @field_validator("strategies")
    @classmethod
    def validate_strategies(cls, v):
        normalized = {}
        valid = {s.value for s in StrategyType}
        for strategy_type, venue in v.items():
            key = str(strategy_type).upper()
            if key not in valid:
                raise ValueError(f"Unknown strategy type {strategy_type}. Valid: {sorted(valid)}")
            normalized[key] = checksum_address(venue)
        return normalized

    @model_validator(mode="after")
    def validate_venue_references(self):
        addresses = [venue.address for venue in self.venues]
        if len(addresses) != len(set(addresses)):
            raise ValueError("Duplicate venue address")
        for strategy_type, venue in self.strategies.items():
            if venue not in addresses:
                raise ValueError(f"Strategy {strategy_type} is bound to unlisted venue {venue}")
        return self

    model_config = {
        "extra": "forbid",  # Disallow extra fields
        "validate_assignment": True,
    }


def validate_engine_config(config_dict: Dict) -> EngineSettings:
    """
    Validate an engine configuration dictionary

    Raises:
        pydantic.ValidationError: If configuration is invalid
    """
    return EngineSettings(**config_dict)


def validate_config_file(config_path: Union[str, Path]) -> EngineSettings:
    """
    Validate an engine configuration file

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated EngineSettings object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If configuration is invalid
        yaml.YAMLError: If YAML parsing fails
    """
    import yaml

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        config_dict = yaml.safe_load(f)

    if config_dict is None:
        raise ValueError("Configuration file is empty or invalid")

    return validate_engine_config(config_dict)
