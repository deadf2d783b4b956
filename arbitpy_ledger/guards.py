"""
Admin and guard layer.

Capabilities are an explicit record checked at the top of each entry point:
the admin identity, the emergency withdrawer, the pause switch, the feature
flags, the venue allow-list and the in-progress (reentrancy) flag.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from .constants import (
    DEFAULT_FLASH_LOAN_FEE_BPS,
    DEFAULT_PLATFORM_FEE_BPS,
    MAX_FEE_BPS,
    PAUSABLE_OPERATIONS,
    EngineOperation,
    StrategyType,
)
from .exceptions import (
    FeatureDisabled,
    FeeTooHigh,
    OperationPaused,
    ReentrantCall,
    Unauthorized,
    UnauthorizedVenue,
)


@dataclass
class Capabilities:
    """Roles, switches and allow-lists of one engine instance."""

    admin: Optional[str]
    emergency_withdrawer: str
    fee_recipient: str
    platform_fee_bps: int = DEFAULT_PLATFORM_FEE_BPS
    flash_loan_fee_bps: int = DEFAULT_FLASH_LOAN_FEE_BPS
    paused: bool = False
    arbitrage_enabled: bool = True
    flash_loans_enabled: bool = True
    # venue address -> human readable name
    authorized_venues: Dict[str, str] = field(default_factory=dict)
    strategy_venues: Dict[StrategyType, str] = field(default_factory=dict)
    in_progress: Optional[EngineOperation] = None


def check_fee(fee_bps: int) -> int:
    if not isinstance(fee_bps, int) or isinstance(fee_bps, bool) or fee_bps < 0:
        raise FeeTooHigh(f"Fee must be a non-negative integer: {fee_bps!r}", fee_bps=fee_bps, max_bps=MAX_FEE_BPS)
    if fee_bps > MAX_FEE_BPS:
        raise FeeTooHigh(
            f"Fee {fee_bps} bps exceeds maximum {MAX_FEE_BPS} bps",
            fee_bps=fee_bps,
            max_bps=MAX_FEE_BPS,
        )
    return fee_bps


def require_not_in_progress(caps: Capabilities, operation: EngineOperation) -> None:
    if caps.in_progress is not None:
        raise ReentrantCall(
            f"{operation.value} called while {caps.in_progress.value} is in progress",
            operation=operation.value,
            active_operation=caps.in_progress.value,
        )


def require_not_paused(caps: Capabilities, operation: EngineOperation) -> None:
    if caps.paused and operation in PAUSABLE_OPERATIONS:
        raise OperationPaused(f"Engine is paused; {operation.value} rejected", operation=operation.value)


def require_admin(caps: Capabilities, caller: str) -> None:
    if caps.admin is None or caller != caps.admin:
        raise Unauthorized(
            f"{caller} is not the admin",
            caller=caller,
            required_role="admin",
        )


def require_emergency_withdrawer(caps: Capabilities, caller: str) -> None:
    if caller != caps.emergency_withdrawer:
        raise Unauthorized(
            f"{caller} is not the emergency withdrawer",
            caller=caller,
            required_role="emergency_withdrawer",
        )


def require_authorized_venue(caps: Capabilities, venue: str) -> None:
    if venue not in caps.authorized_venues:
        raise UnauthorizedVenue(f"Venue {venue} is not authorized", venue=venue)


def require_arbitrage_enabled(caps: Capabilities) -> None:
    if not caps.arbitrage_enabled:
        raise FeatureDisabled("Arbitrage is disabled", operation=EngineOperation.EXECUTE_ARBITRAGE.value)


def require_flash_loans_enabled(caps: Capabilities) -> None:
    if not caps.flash_loans_enabled:
        raise FeatureDisabled("Flash loans are disabled", operation=EngineOperation.FLASH_LOAN.value)
