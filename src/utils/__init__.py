"""
Utility modules: money arithmetic, presentation helpers and the simulated crowd
"""

from .crowd import CrowdBet, bot_ids, crowd_bets
from .decimal_utils import (
    MULTIPLIER_PRECISION,
    ONE,
    ZERO,
    floor_units,
    is_finite_number,
    payout_for,
    profit_for,
    round_multiplier,
    to_decimal,
)

__all__ = [
    'CrowdBet',
    'MULTIPLIER_PRECISION',
    'ONE',
    'ZERO',
    'bot_ids',
    'crowd_bets',
    'floor_units',
    'is_finite_number',
    'payout_for',
    'profit_for',
    'round_multiplier',
    'to_decimal',
]
