"""Core module - Round state machine and business logic"""

from . import validators
from .clock import calculate_multiplier, elapsed_for_multiplier, simulate_ticks
from .distribution import (
    ProvablyFairSource,
    estimate_house_edge,
    expected_return,
    generate_crash_point,
)
from .history import GameHistory
from .ledger import BetLedger
from .round_engine import RoundEngine
from .scheduler import ManualScheduler, Scheduler, ThreadingScheduler, TimerHandle
from .session import PlayerSession
from .validators import (
    AlreadyCashedOutError,
    DuplicateBetError,
    InsufficientBalanceError,
    InvalidAutoCashoutError,
    InvalidStateError,
    InvariantViolation,
    NoActiveBetError,
    UnknownPlayerError,
    ValidationError,
)

__all__ = [
    "AlreadyCashedOutError",
    "BetLedger",
    "DuplicateBetError",
    "GameHistory",
    "InsufficientBalanceError",
    "InvalidAutoCashoutError",
    "InvalidStateError",
    "InvariantViolation",
    "ManualScheduler",
    "NoActiveBetError",
    "PlayerSession",
    "ProvablyFairSource",
    "RoundEngine",
    "Scheduler",
    "ThreadingScheduler",
    "TimerHandle",
    "UnknownPlayerError",
    "ValidationError",
    "calculate_multiplier",
    "elapsed_for_multiplier",
    "estimate_house_edge",
    "expected_return",
    "generate_crash_point",
    "simulate_ticks",
    "validators",
]
