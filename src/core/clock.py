"""
Growth curve: elapsed running time -> multiplier

multiplier(t) = min(MAX_MULTIPLIER, e^(GROWTH_RATE * t)), t in milliseconds.
At the default rate the curve passes 2x after ~11.6s and reaches the 100x
ceiling after ~76.8s. Values are full precision; rounding is left to
utils.display.
"""

import math
from collections.abc import Iterable

from config import config
from models import RoundStatus

from .validators import InvariantViolation, check_multiplier

GROWTH_RATE: float = config.GAME_RULES["growth_rate"]
MAX_MULTIPLIER: float = config.GAME_RULES["max_multiplier"]
TICK_INTERVAL_MS: int = config.GAME_RULES["tick_interval_ms"]


def calculate_multiplier(
    elapsed_ms: float,
    growth_rate: float = GROWTH_RATE,
    max_multiplier: float = MAX_MULTIPLIER,
) -> float:
    """
    Multiplier reached after elapsed_ms of running time

    Pure and monotonically non-decreasing; exactly 1.0 at elapsed_ms == 0.

    Raises:
        InvariantViolation: negative or non-finite elapsed time
    """
    if not math.isfinite(elapsed_ms) or elapsed_ms < 0:
        raise InvariantViolation(f"Elapsed time must be finite and >= 0, got {elapsed_ms!r}")

    if elapsed_ms == 0:
        return 1.0

    # exp() overflows past ~709; anything that large is far above the ceiling anyway
    exponent = growth_rate * elapsed_ms
    if exponent >= math.log(max_multiplier):
        return float(max_multiplier)
    return check_multiplier(math.exp(exponent))


def elapsed_for_multiplier(multiplier: float, growth_rate: float = GROWTH_RATE) -> float:
    """
    Inverse of the curve: ms of running time at which multiplier is first reached
    """
    check_multiplier(multiplier)
    return math.log(multiplier) / growth_rate


def simulate_ticks(
    crash_point: float,
    elapsed_samples: Iterable[float],
    growth_rate: float = GROWTH_RATE,
    max_multiplier: float = MAX_MULTIPLIER,
) -> list[tuple[float, RoundStatus]]:
    """
    Replay a running round from elapsed-time samples

    Returns the (multiplier, status) pair produced by each sample, ending at
    the first sample where the crash condition holds (multiplier clamped to
    crash_point). Depends on nothing but crash_point and the samples, so the
    same inputs always replay to the same sequence.
    """
    check_multiplier(crash_point)
    result: list[tuple[float, RoundStatus]] = []
    for elapsed in elapsed_samples:
        multiplier = calculate_multiplier(elapsed, growth_rate, max_multiplier)
        if multiplier >= crash_point:
            result.append((crash_point, RoundStatus.CRASHED))
            break
        result.append((multiplier, RoundStatus.RUNNING))
    return result
