"""
Round data model
"""

from dataclasses import dataclass, field
from datetime import datetime

from .bet import Bet
from .enums import RoundStatus
from .snapshots import BetView, RoundSnapshot


@dataclass
class Round:
    """
    One crash round

    Attributes:
        id: Unique round identifier
        status: waiting / running / crashed
        start_time: Scheduler ms; the scheduled start while waiting, the
                    actual start once running
        crash_point: Fixed at WAITING -> RUNNING; hidden from snapshots until crash
        multiplier: Last computed multiplier (frozen at crash_point once crashed)
        crash_time: Scheduler ms of the crash transition
        bets: Bets keyed by user id, in placement order
        created_at: Wall-clock creation time
    """

    id: str
    start_time: float
    status: RoundStatus = RoundStatus.WAITING
    crash_point: float | None = None
    multiplier: float = 1.0
    crash_time: float | None = None
    bets: dict[str, Bet] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def elapsed_ms(self) -> float | None:
        """Length of the running phase once crashed"""
        if self.crash_time is None:
            return None
        return self.crash_time - self.start_time

    def to_snapshot(self) -> RoundSnapshot:
        visible_crash = self.crash_point if self.status == RoundStatus.CRASHED else None
        return RoundSnapshot(
            id=self.id,
            status=self.status,
            multiplier=self.multiplier,
            crashPoint=visible_crash,
            startTime=self.start_time,
            crashTime=self.crash_time,
            bets=tuple(
                BetView(
                    userId=bet.user_id,
                    amount=bet.amount,
                    autoCashout=bet.auto_cashout,
                    cashoutMultiplier=bet.cashout_multiplier,
                    profit=bet.profit,
                    status=bet.status,
                )
                for bet in self.bets.values()
            ),
        )
