"""
Two-leg arbitrage settlement.

Single pass per call, no state persisted between calls:

1. validate the intent against the allow-list
2. capture the custody baseline of asset_in
3. take amount_in from the caller
4. leg A on venue_a (must return > 0)
5. leg B on venue_b (must return >= min_amount_out)
6. profit = max(0, custody(asset_in) - baseline)
7. split profit into platform fee and user profit
8. pay both out
9. update aggregates and emit ArbitrageExecuted

Profit is measured as a custody balance delta, not as the venues' reported
amounts; any incidental inflow of asset_in during the legs counts as profit.
Any failure propagates and the engine's transaction boundary discards every
effect of the call.
"""

import logging

from .accrual import checked_add, fee_for
from .events import ArbitrageExecuted
from .exceptions import CallError, InvalidInput, LegFailed, SlippageExceeded
from .guards import require_arbitrage_enabled, require_authorized_venue
from .interfaces import ExternalCallPort, ValueTransferPort
from .ledger_types import ArbitrageIntent, ArbitrageResult
from .payments import collect_payment, pay_out
from .state import EngineState

logger = logging.getLogger(__name__)


def validate_intent(state: EngineState, intent: ArbitrageIntent) -> None:
    caps = state.capabilities
    require_arbitrage_enabled(caps)
    if not isinstance(intent.amount_in, int) or intent.amount_in <= 0:
        raise InvalidInput(f"amount_in must be positive: {intent.amount_in!r}")
    if not isinstance(intent.min_amount_out, int) or intent.min_amount_out < 0:
        raise InvalidInput(f"min_amount_out must be non-negative: {intent.min_amount_out!r}")
    if intent.asset_in == intent.asset_out:
        raise InvalidInput(f"asset_in and asset_out are both {intent.asset_in}")
    require_authorized_venue(caps, intent.venue_a)
    require_authorized_venue(caps, intent.venue_b)


def run_leg(calls: ExternalCallPort, venue: str, payload: bytes, leg: str) -> int:
    try:
        amount = calls.invoke(venue, payload)
    except CallError as e:
        raise LegFailed(f"Leg {leg} on {venue} reverted: {e}", venue=venue, leg=leg) from e
    if not isinstance(amount, int) or amount < 0:
        raise LegFailed(f"Leg {leg} on {venue} returned {amount!r}", venue=venue, leg=leg)
    return amount


def settle_arbitrage(
    state: EngineState,
    transfers: ValueTransferPort,
    calls: ExternalCallPort,
    caller: str,
    intent: ArbitrageIntent,
    tick: int,
    value: int = 0,
) -> ArbitrageResult:
    """Execute one arbitrage intent for ``caller``; see module docstring."""
    validate_intent(state, intent)
    caps = state.capabilities

    baseline = transfers.balance_of(intent.asset_in)
    collect_payment(transfers, intent.asset_in, caller, intent.amount_in, value)

    leg_a_amount = run_leg(calls, intent.venue_a, intent.payload_a, "A")
    if leg_a_amount == 0:
        raise LegFailed(
            f"Leg A on {intent.venue_a} returned nothing", venue=intent.venue_a, leg="A"
        )

    leg_b_amount = run_leg(calls, intent.venue_b, intent.payload_b, "B")
    if leg_b_amount < intent.min_amount_out:
        raise SlippageExceeded(
            f"Leg B returned {leg_b_amount}, below minimum {intent.min_amount_out}",
            minimum=intent.min_amount_out,
            actual=leg_b_amount,
        )

    profit = max(0, transfers.balance_of(intent.asset_in) - baseline)
    fee = fee_for(profit, caps.platform_fee_bps)
    user_profit = profit - fee

    pay_out(transfers, intent.asset_in, caps.fee_recipient, fee)
    pay_out(transfers, intent.asset_in, caller, user_profit)

    totals = state.totals
    totals.total_arbitrage_profit = checked_add(totals.total_arbitrage_profit, profit)
    totals.total_volume = checked_add(totals.total_volume, intent.amount_in)

    state.emit(
        ArbitrageExecuted(
            account=caller,
            tick=tick,
            asset_in=intent.asset_in,
            asset_out=intent.asset_out,
            amount_in=intent.amount_in,
            profit=user_profit,
        )
    )
    logger.debug(
        f"Arbitrage {intent.asset_in}->{intent.asset_out} for {caller}: "
        f"in={intent.amount_in} legs=({leg_a_amount}, {leg_b_amount}) "
        f"profit={profit} fee={fee}"
    )
    return ArbitrageResult(
        leg_a_amount=leg_a_amount,
        leg_b_amount=leg_b_amount,
        profit=profit,
        fee=fee,
        user_profit=user_profit,
    )
