"""
Crash point distribution

A round's crash point is drawn once, when the round starts. With
probability house_edge the round busts instantly at 1.00x; otherwise the
crash point follows 1 / (1 - u) for uniform u in [0, 1), so
P(crash >= x) = 1 / x. Together that gives P(crash >= x) = (1 - h) / x for
x > 1: every fixed cashout target returns 1 - h per unit staked, which is
what "house edge h" means.

The random source is always explicit. Anything with a random() method
returning floats in [0, 1) works: random.Random(seed) for replays,
random.SystemRandom() for production, ProvablyFairSource for verifiable
rounds.
"""

import hashlib
import hmac
import logging
import random
import secrets
from collections.abc import Iterable
from typing import Protocol

logger = logging.getLogger(__name__)

# 52 bits fit exactly in a float mantissa
_HASH_HEX_CHARS = 13
_HASH_SPACE = 16**_HASH_HEX_CHARS

_default_source = random.SystemRandom()


class RandomSource(Protocol):
    def random(self) -> float: ...


def generate_crash_point(
    house_edge: float,
    rng: RandomSource | None = None,
    max_multiplier: float | None = None,
) -> float:
    """
    Draw a crash point >= 1.0

    Args:
        house_edge: Probability mass of the instant 1.00x bust, in [0, 1)
        rng: Uniform source; a SystemRandom instance when omitted
        max_multiplier: Optional ceiling (the round engine passes the curve's
                        maximum so every round can actually crash)

    Raises:
        ValueError: house_edge outside [0, 1)
    """
    if not 0 <= house_edge < 1:
        raise ValueError("House edge must be between 0 (inclusive) and 1 (exclusive).")

    source = rng if rng is not None else _default_source

    if source.random() < house_edge:
        return 1.0

    u = source.random()
    crash_point = max(1.0, 1.0 / (1.0 - u))

    if max_multiplier is not None:
        crash_point = min(crash_point, max_multiplier)
    return crash_point


def expected_return(crash_points: Iterable[float], cashout_at: float) -> float:
    """
    Mean gross return per unit stake for a player always cashing out at cashout_at

    A bet wins when the round reaches cashout_at strictly before crashing.
    """
    total = 0.0
    count = 0
    for crash_point in crash_points:
        count += 1
        if crash_point > cashout_at:
            total += cashout_at
    if count == 0:
        raise ValueError("expected_return needs at least one crash point")
    return total / count


def estimate_house_edge(crash_points: Iterable[float], cashout_at: float = 2.0) -> float:
    """Empirical house edge: 1 - expected_return at a fixed cashout target"""
    return 1.0 - expected_return(crash_points, cashout_at)


def hash_to_uniform(hex_digest: str) -> float:
    """First 52 bits of a hex digest as a float in [0, 1)"""
    return int(hex_digest[:_HASH_HEX_CHARS], 16) / _HASH_SPACE


class ProvablyFairSource:
    """
    Deterministic uniform stream derived from committed seeds

    Each draw is HMAC-SHA256(server_seed, "client_seed:nonce:cursor"). The
    server publishes server_seed_hash before the round and reveals
    server_seed afterwards; anyone can then replay the draws and recompute
    the crash point.
    """

    def __init__(self, server_seed: str | None = None, client_seed: str = "public", nonce: int = 0):
        self.server_seed = server_seed or secrets.token_hex(32)
        self.client_seed = client_seed
        self.nonce = nonce
        self._cursor = 0

    @property
    def server_seed_hash(self) -> str:
        return hashlib.sha256(self.server_seed.encode("utf-8")).hexdigest()

    def random(self) -> float:
        message = f"{self.client_seed}:{self.nonce}:{self._cursor}"
        digest = hmac.new(
            self.server_seed.encode("utf-8"),
            msg=message.encode("utf-8"),
            digestmod=hashlib.sha256,
        ).hexdigest()
        self._cursor += 1
        return hash_to_uniform(digest)

    def next_round(self) -> "ProvablyFairSource":
        """Source for the following round: same seeds, nonce + 1"""
        return ProvablyFairSource(self.server_seed, self.client_seed, self.nonce + 1)

    @staticmethod
    def verify(server_seed: str, server_seed_hash: str) -> bool:
        """Check a revealed server seed against its published commitment"""
        expected = hashlib.sha256(server_seed.encode("utf-8")).hexdigest()
        return hmac.compare_digest(expected, server_seed_hash)
