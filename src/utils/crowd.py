"""
Simulated crowd of bettors

Fills a round with bot stakes the way a busy table looks: stakes between
100 and 999 units, and roughly 30% of bots riding without an auto-cashout
(they lose unless someone cashes them out by hand).
"""

from dataclasses import dataclass
from decimal import Decimal

MIN_STAKE = 100
MAX_STAKE = 999
RIDE_PROBABILITY = 0.3
MIN_TARGET = 1.1
MAX_TARGET = 5.1


@dataclass(frozen=True)
class CrowdBet:
    user_id: str
    amount: int
    auto_cashout: Decimal | None


def bot_ids(count: int) -> list[str]:
    """Stable ids for count bots: bot-1 .. bot-N"""
    if count < 0:
        raise ValueError(f"Crowd size must not be negative, got {count}")
    return [f"bot-{i}" for i in range(1, count + 1)]


def crowd_bets(rng, user_ids: list[str]) -> list[CrowdBet]:
    """
    One bet per bot, in the order given

    Args:
        rng: random.Random-like source (randint, random, uniform)
        user_ids: Registered bot ids
    """
    bets = []
    for user_id in user_ids:
        amount = rng.randint(MIN_STAKE, MAX_STAKE)
        if rng.random() < RIDE_PROBABILITY:
            target = None
        else:
            target = Decimal(str(round(rng.uniform(MIN_TARGET, MAX_TARGET), 2)))
        bets.append(CrowdBet(user_id, amount, target))
    return bets
