"""
Enumerations for round and bet states
"""

from enum import Enum


class RoundStatus(str, Enum):
    """Round lifecycle: WAITING -> RUNNING -> CRASHED -> (next round) WAITING"""

    WAITING = "waiting"
    RUNNING = "running"
    CRASHED = "crashed"

    @classmethod
    def accepts_bets(cls, status: str) -> bool:
        return status == cls.WAITING

    @classmethod
    def accepts_cashouts(cls, status: str) -> bool:
        return status == cls.RUNNING


class BetStatus(str, Enum):
    """Bet lifecycle status"""

    ACTIVE = "active"
    CASHED_OUT = "cashed_out"
    LOST = "lost"
    REFUNDED = "refunded"

    @property
    def is_settled(self) -> bool:
        return self is not BetStatus.ACTIVE
