"""
Player Session

Balance and per-round bet pointer for a single player. Debits and credits
are atomic under the session's own lock; the round engine is the only
caller during play.
"""

import logging
import threading
from collections import deque
from datetime import datetime
from typing import Any

from config import config
from models import Bet
from services import Events, event_bus

from .validators import InsufficientBalanceError, InvariantViolation

logger = logging.getLogger(__name__)

MAX_TRANSACTION_LOG_SIZE = config.MEMORY["max_transaction_log"]


class PlayerSession:
    """
    Single player's balance, active bet and running statistics
    """

    def __init__(self, user_id: str, balance: int | None = None, bus=event_bus):
        if balance is None:
            balance = config.get("financial", "initial_balance")
        if isinstance(balance, bool) or not isinstance(balance, int) or balance < 0:
            raise ValueError(f"Starting balance must be a non-negative integer, got {balance!r}")

        self.user_id = user_id
        self._balance = balance
        self._initial_balance = balance
        self._active_bet: Bet | None = None
        self._bus = bus

        self._stats = {
            "rounds_played": 0,
            "rounds_won": 0,
            "rounds_lost": 0,
            "total_wagered": 0,
            "total_profit": 0,
            "biggest_win": 0,
            "peak_balance": balance,
        }
        self._transaction_log: deque[dict] = deque(maxlen=MAX_TRANSACTION_LOG_SIZE)

        self._lock = threading.RLock()

    # ========== Accessors ==========

    @property
    def balance(self) -> int:
        with self._lock:
            return self._balance

    @property
    def active_bet(self) -> Bet | None:
        with self._lock:
            return self._active_bet

    def get_stats(self, key: str | None = None) -> Any:
        with self._lock:
            if key:
                return self._stats.get(key)
            return self._stats.copy()

    def get_transaction_log(self, limit: int | None = None) -> list[dict]:
        with self._lock:
            log_list = list(self._transaction_log)
        if limit:
            return log_list[-limit:]
        return log_list

    # ========== Balance Mutation ==========

    def debit(self, amount: int, reason: str = "") -> int:
        """
        Remove amount from the balance

        Raises:
            InsufficientBalanceError: amount exceeds balance
        """
        with self._lock:
            if amount > self._balance:
                raise InsufficientBalanceError(
                    f"Insufficient balance: have {self._balance}, need {amount}"
                )
            return self._apply(-amount, reason)

    def credit(self, amount: int, reason: str = "") -> int:
        with self._lock:
            return self._apply(amount, reason)

    def _apply(self, delta: int, reason: str) -> int:
        old_balance = self._balance
        new_balance = old_balance + delta
        if new_balance < 0:
            raise InvariantViolation(f"Balance of {self.user_id} would go negative: {new_balance}")

        self._balance = new_balance
        self._transaction_log.append(
            {
                "timestamp": datetime.now(),
                "amount": delta,
                "old_balance": old_balance,
                "new_balance": new_balance,
                "reason": reason,
            }
        )
        if new_balance > self._stats["peak_balance"]:
            self._stats["peak_balance"] = new_balance

        self._bus.publish(
            Events.BALANCE_CHANGED,
            {"user_id": self.user_id, "old": old_balance, "new": new_balance, "reason": reason},
        )
        logger.debug(f"Balance {self.user_id}: {old_balance} -> {new_balance} ({reason})")
        return new_balance

    # ========== Bet Tracking ==========

    def attach_bet(self, bet: Bet):
        with self._lock:
            self._active_bet = bet
            self._stats["total_wagered"] += bet.amount

    def detach_bet(self, withdrawn: bool = False):
        """Drop the per-round bet pointer (withdrawn bets do not count as wagered)"""
        with self._lock:
            if withdrawn and self._active_bet is not None:
                self._stats["total_wagered"] -= self._active_bet.amount
            self._active_bet = None

    def record_settlement(self, bet: Bet):
        """Fold a settled bet into the statistics"""
        if bet.profit is None:
            raise InvariantViolation(f"Settlement recorded for unsettled bet of {bet.user_id}")
        with self._lock:
            self._stats["rounds_played"] += 1
            self._stats["total_profit"] += bet.profit
            if bet.profit > 0:
                self._stats["rounds_won"] += 1
                self._stats["biggest_win"] = max(self._stats["biggest_win"], bet.profit)
            elif bet.profit < 0:
                self._stats["rounds_lost"] += 1

    def metrics(self) -> dict[str, Any]:
        """Performance summary for display"""
        with self._lock:
            played = self._stats["rounds_played"]
            win_rate = self._stats["rounds_won"] / played if played else 0.0
            roi = (
                (self._balance - self._initial_balance) / self._initial_balance
                if self._initial_balance
                else 0.0
            )
            return {
                "balance": self._balance,
                "rounds_played": played,
                "win_rate": win_rate,
                "total_wagered": self._stats["total_wagered"],
                "total_profit": self._stats["total_profit"],
                "biggest_win": self._stats["biggest_win"],
                "roi": roi,
            }

    def __repr__(self) -> str:
        return f"PlayerSession(user_id={self.user_id!r}, balance={self.balance})"
