"""
Shared test fixtures for pytest
"""

import itertools
import random

import pytest

from config import config
from core import BetLedger, ManualScheduler, PlayerSession, RoundEngine
from models import Round, RoundStatus
from services import event_bus, setup_logging


class SequenceRandom:
    """Random source replaying a fixed cycle of uniforms"""

    def __init__(self, values):
        self._values = itertools.cycle(values)

    def random(self) -> float:
        return next(self._values)


def uniform_for_crash(crash_point: float) -> float:
    """Uniform that maps to crash_point when the instant-bust draw misses"""
    return 1.0 - 1.0 / crash_point


def fixed_crash_rng(*crash_points: float) -> SequenceRandom:
    """Source yielding the given crash points in order (with house_edge=0)"""
    values = []
    for crash_point in crash_points:
        values.extend([0.5, uniform_for_crash(crash_point)])
    return SequenceRandom(values)


@pytest.fixture(autouse=True)
def setup_test_logging():
    """Setup logging for all tests"""
    setup_logging()


@pytest.fixture(autouse=True)
def cleanup_event_bus():
    """Clean up event bus after each test"""
    if not event_bus.is_running():
        event_bus.start()

    yield

    event_bus.clear_all()


@pytest.fixture(autouse=True)
def reset_config():
    """Drop custom settings a test may have applied"""
    yield
    config.reset()


@pytest.fixture
def scheduler():
    """Synthetic clock starting at 0 ms"""
    return ManualScheduler()


@pytest.fixture
def seeded_rng():
    return random.Random(1234)


@pytest.fixture
def make_engine(scheduler):
    """Factory for engines on the manual clock (1s countdown and cooldown)"""
    engines = []

    def factory(*crash_points, **kwargs):
        options = {
            "scheduler": scheduler,
            "house_edge": 0.0,
            "tick_interval_ms": 100,
            "countdown_ms": 1000,
            "cooldown_ms": 1000,
        }
        if crash_points:
            options["rng"] = fixed_crash_rng(*crash_points)
        options.update(kwargs)
        engine = RoundEngine(**options)
        engines.append(engine)
        return engine

    yield factory

    for engine in engines:
        if engine.is_running:
            engine.stop()


@pytest.fixture
def session():
    """Player with the default 10000 balance"""
    return PlayerSession("alice")


@pytest.fixture
def waiting_round():
    return Round(id="round-test", start_time=0.0)


@pytest.fixture
def ledger(waiting_round):
    return BetLedger(waiting_round)


@pytest.fixture
def running_ledger(ledger):
    """Ledger with a helper to flip its round to running at a given crash point"""

    def start(crash_point: float = 10.0):
        ledger.round.crash_point = crash_point
        ledger.round.status = RoundStatus.RUNNING
        return ledger

    return start
