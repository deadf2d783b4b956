"""
Strategy execution: route a caller's funds through the venue bound to a
strategy type and pay the venue's output back in the input asset.
"""

import logging

from .accrual import checked_add
from .constants import StrategyType
from .events import StrategyExecuted
from .exceptions import InvalidInput, LegFailed, NotFound, SlippageExceeded
from .guards import require_authorized_venue
from .interfaces import ExternalCallPort, ValueTransferPort
from .arbitrage import run_leg
from .ledger_types import StrategyIntent, StrategyResult
from .payments import collect_payment, pay_out
from .state import EngineState

logger = logging.getLogger(__name__)


def resolve_strategy_type(strategy_type) -> StrategyType:
    if isinstance(strategy_type, StrategyType):
        return strategy_type
    try:
        return StrategyType(str(strategy_type).upper())
    except ValueError:
        valid = ", ".join(s.value for s in StrategyType)
        raise InvalidInput(f"Unknown strategy type {strategy_type!r}. Valid: {valid}")


def settle_strategy(
    state: EngineState,
    transfers: ValueTransferPort,
    calls: ExternalCallPort,
    caller: str,
    intent: StrategyIntent,
    tick: int,
    value: int = 0,
) -> StrategyResult:
    strategy_type = resolve_strategy_type(intent.strategy_type)
    if not isinstance(intent.input_amount, int) or intent.input_amount <= 0:
        raise InvalidInput(f"input_amount must be positive: {intent.input_amount!r}")
    if not isinstance(intent.min_output_amount, int) or intent.min_output_amount < 0:
        raise InvalidInput(f"min_output_amount must be non-negative: {intent.min_output_amount!r}")

    caps = state.capabilities
    venue = caps.strategy_venues.get(strategy_type)
    if venue is None:
        raise NotFound(f"No venue bound to strategy {strategy_type.value}", key=strategy_type.value)
    require_authorized_venue(caps, venue)

    collect_payment(transfers, intent.input_asset, caller, intent.input_amount, value)

    output = run_leg(calls, venue, intent.payload, strategy_type.value)
    if output == 0:
        raise LegFailed(f"Strategy {strategy_type.value} returned nothing", venue=venue, leg=strategy_type.value)
    if output < intent.min_output_amount:
        raise SlippageExceeded(
            f"Strategy {strategy_type.value} returned {output}, below minimum {intent.min_output_amount}",
            minimum=intent.min_output_amount,
            actual=output,
        )

    pay_out(transfers, intent.input_asset, caller, output)
    state.totals.total_volume = checked_add(state.totals.total_volume, intent.input_amount)

    state.emit(
        StrategyExecuted(
            account=caller,
            tick=tick,
            strategy_type=strategy_type.value,
            input_amount=intent.input_amount,
            output_amount=output,
        )
    )
    logger.debug(f"Strategy {strategy_type.value} for {caller}: in={intent.input_amount} out={output}")
    return StrategyResult(
        strategy_type=strategy_type,
        input_amount=intent.input_amount,
        output_amount=output,
    )
