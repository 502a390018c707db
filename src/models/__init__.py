"""
Data models for the crash round engine
"""

from .bet import Bet
from .enums import BetStatus, RoundStatus
from .round import Round
from .snapshots import BetView, GameHistoryEntry, RoundSnapshot

__all__ = [
    "Bet",
    "BetStatus",
    "BetView",
    "GameHistoryEntry",
    "Round",
    "RoundSnapshot",
    "RoundStatus",
]
