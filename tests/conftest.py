"""Shared fixtures for the ledger engine tests."""

import pytest
from prometheus_client import CollectorRegistry

from arbitpy_ledger.adapters.paper import InMemoryCallPort, InMemoryCustody, PaperBorrower, PaperVenue
from arbitpy_ledger.config_loader import get_default_config
from arbitpy_ledger.constants import NATIVE_ASSET, PRECISION
from arbitpy_ledger.engine import LedgerEngine
from arbitpy_ledger.interfaces import DeterministicTickProvider
from arbitpy_ledger.metrics import EngineMetrics

ENGINE = "engine"
ADMIN = "admin"
FEE_RECIPIENT = "fee_recipient"
EMERGENCY = "emergency_withdrawer"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"

WETH = "WETH"
USDC = "USDC"

VENUE_A = "venue_a"
VENUE_B = "venue_b"
COMPOUND_VENUE = "compound_venue"

START_TICK = 100
REWARD_RESERVE = 1_000_000 * PRECISION
ONE = PRECISION


@pytest.fixture
def clock():
    return DeterministicTickProvider(start_tick=START_TICK)


@pytest.fixture
def custody():
    custody = InMemoryCustody(ENGINE)
    custody.mint(NATIVE_ASSET, ENGINE, REWARD_RESERVE)
    for account in (ALICE, BOB, CAROL):
        custody.mint(NATIVE_ASSET, account, 1_000 * ONE)
        custody.mint(WETH, account, 10_000 * ONE)
    return custody


@pytest.fixture
def calls():
    return InMemoryCallPort()


@pytest.fixture
def metrics():
    return EngineMetrics(CollectorRegistry())


@pytest.fixture
def make_engine(custody, calls, clock):
    """Factory building an engine over the shared paper ports."""

    def _make(metrics=None, **config_overrides):
        config = get_default_config(ADMIN, FEE_RECIPIENT, EMERGENCY, **config_overrides)
        return LedgerEngine(config, custody, calls, clock=clock, metrics=metrics)

    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()


@pytest.fixture
def weth_pool(engine):
    """Id of a WETH pool with no reward emission."""
    return engine.create_pool(ADMIN, WETH, 0)


@pytest.fixture
def venues(engine, custody, calls):
    """WETH->USDC at 2x and USDC->WETH at 0.505x: a 1% round trip."""
    venue_a = PaperVenue(custody, VENUE_A, WETH, USDC, 20_000)
    venue_b = PaperVenue(custody, VENUE_B, USDC, WETH, 5_050)
    custody.mint(USDC, VENUE_A, 1_000_000 * ONE)
    custody.mint(WETH, VENUE_B, 1_000_000 * ONE)
    for venue in (venue_a, venue_b):
        calls.register_venue(venue.address, venue)
        engine.authorize_venue(ADMIN, venue.address, venue.address)
    return venue_a, venue_b


@pytest.fixture
def borrower(custody, calls):
    borrower = PaperBorrower(custody, BOB)
    calls.register_borrower(BOB, borrower)
    return borrower
