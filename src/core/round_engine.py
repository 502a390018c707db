"""
Round Engine - the authoritative crash round state machine

    WAITING --(countdown elapsed)--> RUNNING --(multiplier >= crash point)--> CRASHED
       ^                                                                        |
       +----------------------------(cooldown elapsed)--------------------------+

Only the engine writes status and multiplier. Bet operations and timer
callbacks are serialized by one RLock, and at most one timer (countdown,
tick or cooldown) is pending at any time.

Within a tick the order is fixed: recompute the multiplier from elapsed
time, run auto-cashouts, then apply the crash condition.
"""

import logging
import threading
import uuid
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Any

from config import config
from models import Bet, GameHistoryEntry, Round, RoundSnapshot, RoundStatus
from services import Events, event_bus

from .clock import calculate_multiplier
from .distribution import ProvablyFairSource, RandomSource, generate_crash_point
from .history import GameHistory
from .ledger import BetLedger
from .scheduler import Scheduler, ThreadingScheduler, TimerHandle
from .session import PlayerSession
from .validators import (
    InvalidStateError,
    InvariantViolation,
    UnknownPlayerError,
    ValidationError,
    validate_auto_cashout,
)

logger = logging.getLogger(__name__)


class RoundEngine:
    """
    Drives consecutive crash rounds and exposes the bet operations

    Args:
        scheduler: Clock/timer source (ThreadingScheduler when omitted)
        rng: Uniform random source for crash points (SystemRandom when omitted)
        house_edge, growth_rate, max_multiplier, tick_interval_ms,
        countdown_ms, cooldown_ms, history_size: default to config values
    """

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        rng: RandomSource | None = None,
        house_edge: float | None = None,
        growth_rate: float | None = None,
        max_multiplier: float | None = None,
        tick_interval_ms: int | None = None,
        countdown_ms: int | None = None,
        cooldown_ms: int | None = None,
        history_size: int | None = None,
        bus=event_bus,
    ):
        rules = config.section("game_rules")
        self.house_edge = rules["house_edge"] if house_edge is None else house_edge
        self.growth_rate = rules["growth_rate"] if growth_rate is None else growth_rate
        self.max_multiplier = rules["max_multiplier"] if max_multiplier is None else max_multiplier
        self.tick_interval_ms = rules["tick_interval_ms"] if tick_interval_ms is None else tick_interval_ms
        self.countdown_ms = rules["countdown_ms"] if countdown_ms is None else countdown_ms
        self.cooldown_ms = rules["cooldown_ms"] if cooldown_ms is None else cooldown_ms

        if not 0 <= self.house_edge < 1:
            raise ValueError(f"house_edge must be in [0, 1), got {self.house_edge}")
        if self.tick_interval_ms <= 0:
            raise ValueError(f"tick_interval_ms must be positive, got {self.tick_interval_ms}")

        self._scheduler = scheduler or ThreadingScheduler()
        self._rng = rng
        self._bus = bus

        if history_size is None:
            history_size = config.get("memory", "history_size")
        self._history = GameHistory(history_size)

        self._players: dict[str, PlayerSession] = {}
        self._round: Round | None = None
        self._ledger: BetLedger | None = None

        self._timer: TimerHandle | None = None
        self._timer_generation = 0
        self._running = False
        self._rounds_completed = 0

        self._lock = threading.RLock()

        logger.info(
            f"RoundEngine initialized (house_edge={self.house_edge}, "
            f"tick={self.tick_interval_ms}ms, countdown={self.countdown_ms}ms, "
            f"cooldown={self.cooldown_ms}ms)"
        )

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def start(self) -> RoundSnapshot:
        """Open the first betting window"""
        with self._lock:
            if self._running:
                logger.warning("RoundEngine already running")
                return self._round.to_snapshot()
            self._running = True
            self._open_round()
            return self._round.to_snapshot()

    def stop(self) -> list[Bet]:
        """
        Cancel timers and leave no bet unsettled

        A waiting round is rolled back and a running round is voided; in
        both cases every open stake is refunded. Cashouts already paid stand.

        Returns:
            Bets refunded by the shutdown
        """
        with self._lock:
            if not self._running:
                return []
            self._running = False
            self._cancel_timer()

            refunded: list[Bet] = []
            if self._round is not None and self._round.status != RoundStatus.CRASHED:
                reason = "rolled back" if self._round.status == RoundStatus.WAITING else "voided"
                refunded = self._ledger.refund_open(self._players, reason)
                self._bus.publish(
                    Events.ROUND_CANCELLED,
                    {"round_id": self._round.id, "reason": reason, "refunded": len(refunded)},
                )
                logger.warning(f"Round {self._round.id} {reason} on shutdown")
            for session in self._players.values():
                session.detach_bet()

        self._scheduler.shutdown()
        logger.info(f"RoundEngine stopped after {self._rounds_completed} round(s)")
        return refunded

    @property
    def is_running(self) -> bool:
        return self._running

    # ========================================================================
    # PLAYERS
    # ========================================================================

    def register_player(self, user_id: str, balance: int | None = None) -> PlayerSession:
        with self._lock:
            if user_id in self._players:
                raise ValidationError(f"Player {user_id} is already registered")
            session = PlayerSession(user_id, balance, bus=self._bus)
            self._players[user_id] = session
            logger.info(f"Registered player {user_id} with balance {session.balance}")
            return session

    def get_player(self, user_id: str) -> PlayerSession:
        with self._lock:
            session = self._players.get(user_id)
        if session is None:
            raise UnknownPlayerError(f"Unknown player: {user_id}")
        return session

    # ========================================================================
    # BET OPERATIONS
    # ========================================================================

    def place_bet(self, user_id: str, amount: int, auto_cashout: float | Decimal | None = None) -> Bet:
        """
        Place a bet in the waiting round

        Raises:
            InvalidStateError: round is not waiting (or engine not started)
            DuplicateBetError: player already bet this round
            InsufficientBalanceError: amount <= 0 or above balance
            InvalidAutoCashoutError: threshold not a finite multiplier >= minimum
        """
        with self._lock:
            session = self.get_player(user_id)
            ledger = self._require_ledger(live=True)
            try:
                threshold = validate_auto_cashout(auto_cashout)
                return ledger.place(session, amount, threshold)
            except ValidationError as e:
                self._reject("place_bet", user_id, e)
                raise

    def withdraw_bet(self, user_id: str) -> Bet:
        """Take a bet back (full refund) while the round is still waiting"""
        with self._lock:
            session = self.get_player(user_id)
            ledger = self._require_ledger(live=True)
            try:
                return ledger.withdraw(session)
            except ValidationError as e:
                self._reject("withdraw_bet", user_id, e)
                raise

    def cashout(self, user_id: str) -> Bet:
        """
        Cash out at the current multiplier

        The round is first brought up to the current clock instant, so a
        request arriving after the crash instant fails even if the tick that
        detects the crash has not fired yet.

        Raises:
            InvalidStateError: round not running
            NoActiveBetError: no bet this round
            AlreadyCashedOutError: bet already cashed out
        """
        with self._lock:
            session = self.get_player(user_id)
            ledger = self._require_ledger(live=True)
            try:
                if self._round.status == RoundStatus.RUNNING:
                    self._advance(self._scheduler.now_ms())
                return ledger.cashout(session, self._round.multiplier)
            except ValidationError as e:
                self._reject("cashout", user_id, e)
                raise
            except InvariantViolation as e:
                logger.error(f"Invariant violated during cashout for {user_id}: {e}", exc_info=True)
                raise

    # ========================================================================
    # READ SIDE
    # ========================================================================

    def snapshot(self) -> RoundSnapshot:
        with self._lock:
            if self._round is None:
                raise InvalidStateError("No round yet; call start() first")
            return self._round.to_snapshot()

    def history(self, limit: int | None = None) -> list[GameHistoryEntry]:
        """Completed rounds, most recent first"""
        return self._history.feed(limit)

    def round_totals(self) -> dict[str, int]:
        with self._lock:
            return self._require_ledger().totals()

    @property
    def status(self) -> RoundStatus | None:
        with self._lock:
            return self._round.status if self._round else None

    @property
    def rounds_completed(self) -> int:
        return self._rounds_completed

    # ========================================================================
    # ADMINISTRATIVE OVERRIDES
    # ========================================================================

    def start_round_now(self) -> RoundSnapshot:
        """Skip the rest of the countdown (cancels the pending start timer)"""
        with self._lock:
            if self._round is None or self._round.status != RoundStatus.WAITING:
                raise InvalidStateError("Can only start a waiting round")
            self._cancel_timer()
            self._start_running()
            return self._round.to_snapshot()

    def next_round_now(self) -> RoundSnapshot:
        """Skip the rest of the cooldown (cancels the pending next-round timer)"""
        with self._lock:
            if self._round is None or self._round.status != RoundStatus.CRASHED:
                raise InvalidStateError("Can only advance from a crashed round")
            self._cancel_timer()
            self._open_round()
            return self._round.to_snapshot()

    def tick(self) -> RoundSnapshot:
        """Process a tick immediately at the scheduler's current time"""
        with self._lock:
            if self._running and self._round.status == RoundStatus.RUNNING:
                self._advance(self._scheduler.now_ms())
            return self.snapshot()

    # ========================================================================
    # TRANSITIONS (called with the lock held)
    # ========================================================================

    def _open_round(self):
        for session in self._players.values():
            session.detach_bet()

        now = self._scheduler.now_ms()
        self._round = Round(id=f"round-{uuid.uuid4().hex[:12]}", start_time=now + self.countdown_ms)
        self._ledger = BetLedger(self._round, bus=self._bus)

        self._bus.publish(
            Events.ROUND_WAITING,
            {"round_id": self._round.id, "start_time": self._round.start_time},
        )
        logger.info(f"Round {self._round.id} open for bets ({self.countdown_ms}ms countdown)")
        self._arm(self.countdown_ms, self._start_running)

    def _start_running(self):
        crash_point = generate_crash_point(self.house_edge, self._rng, self.max_multiplier)
        if isinstance(self._rng, ProvablyFairSource):
            # Each round draws from its own nonce
            logger.debug(f"Crash point drawn with nonce {self._rng.nonce}")
            self._rng = self._rng.next_round()
        round_obj = self._round
        round_obj.crash_point = crash_point
        round_obj.start_time = self._scheduler.now_ms()
        round_obj.multiplier = 1.0
        round_obj.status = RoundStatus.RUNNING

        self._bus.publish(
            Events.ROUND_STARTED,
            {"round_id": round_obj.id, "start_time": round_obj.start_time, "bets": len(self._ledger)},
        )
        logger.info(f"Round {round_obj.id} running with {len(self._ledger)} bet(s)")
        logger.debug(f"Round {round_obj.id} crash point {crash_point:.4f}x")

        # A 1.00x crash point is reached at elapsed 0
        self._advance(round_obj.start_time)
        if round_obj.status == RoundStatus.RUNNING:
            self._arm(self.tick_interval_ms, self._on_tick)

    def _on_tick(self):
        self._advance(self._scheduler.now_ms())
        if self._round.status == RoundStatus.RUNNING:
            self._arm(self.tick_interval_ms, self._on_tick)

    def _advance(self, now_ms: float):
        """
        Bring the running round up to now_ms

        Uses actual elapsed time, so late or missed ticks never skew the
        multiplier.
        """
        round_obj = self._round
        elapsed = max(0.0, now_ms - round_obj.start_time)
        raw = calculate_multiplier(elapsed, self.growth_rate, self.max_multiplier)
        if raw < round_obj.multiplier:
            raise InvariantViolation(
                f"Multiplier went backwards in {round_obj.id}: {round_obj.multiplier} -> {raw}"
            )

        crash_point = round_obj.crash_point
        crashing = raw >= crash_point

        self._run_auto_cashouts(raw, crash_point, crashing)

        if crashing:
            round_obj.multiplier = crash_point
            self._crash(now_ms)
        else:
            round_obj.multiplier = raw
            self._bus.publish(
                Events.ROUND_TICK,
                {"round_id": round_obj.id, "multiplier": raw, "elapsed_ms": elapsed},
            )

    def _run_auto_cashouts(self, raw: float, crash_point: float, crashing: bool):
        """
        Cash out every open bet whose threshold this tick reached

        On a normal tick the bet is paid at the tick's multiplier. On the
        crashing tick only thresholds strictly below the crash point were
        crossed before the crash; those are paid at the threshold itself,
        the multiplier at the crossing instant.
        """
        for bet in self._ledger.pending_auto_cashouts():
            threshold = float(bet.auto_cashout)
            if crashing:
                if threshold >= crash_point:
                    continue
                multiplier = threshold
            elif raw >= threshold:
                multiplier = raw
            else:
                continue
            self._ledger.cashout(self._players[bet.user_id], multiplier, auto=True)

    def _crash(self, now_ms: float):
        round_obj = self._round
        round_obj.status = RoundStatus.CRASHED
        round_obj.crash_time = now_ms

        lost = self._ledger.settle_crash(self._players)
        entry = self._history.record(round_obj.id, round_obj.crash_point, datetime.now())
        self._rounds_completed += 1

        totals = self._ledger.totals()
        self._bus.publish(
            Events.ROUND_CRASHED,
            {
                "round_id": round_obj.id,
                "crash_point": round_obj.crash_point,
                "crash_time": now_ms,
                "lost": len(lost),
                "timestamp": entry.timestamp.isoformat(),
                **totals,
            },
        )
        logger.info(
            f"Round {round_obj.id} crashed at {round_obj.crash_point:.2f}x "
            f"(wagered {totals['wagered']}, paid {totals['paid_out']})"
        )

        self._cancel_timer()
        if self._running:
            self._arm(self.cooldown_ms, self._open_round)

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _arm(self, delay_ms: float, action: Callable[[], None]):
        """Replace the pending timer; stale callbacks see a newer generation and bail"""
        self._cancel_timer()
        self._timer_generation += 1
        generation = self._timer_generation

        def fire():
            with self._lock:
                if generation != self._timer_generation or not self._running:
                    return
                self._timer = None
                action()

        self._timer = self._scheduler.call_later(delay_ms, fire)

    def _cancel_timer(self):
        self._timer_generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _require_ledger(self, live: bool = False) -> BetLedger:
        if self._ledger is None:
            raise InvalidStateError("No round yet; call start() first")
        if live and not self._running:
            raise InvalidStateError("Engine is stopped")
        return self._ledger

    def _reject(self, operation: str, user_id: str, error: Exception):
        logger.warning(f"{operation} rejected for {user_id}: {error}")
        self._bus.publish(
            Events.BET_REJECTED,
            {"operation": operation, "user_id": user_id, "error": type(error).__name__, "reason": str(error)},
        )

    def get_state_summary(self) -> dict[str, Any]:
        """Summary of the engine for debugging"""
        with self._lock:
            return {
                "running": self._running,
                "round_id": self._round.id if self._round else None,
                "status": self._round.status.value if self._round else None,
                "multiplier": self._round.multiplier if self._round else None,
                "bets": len(self._ledger) if self._ledger else 0,
                "players": len(self._players),
                "rounds_completed": self._rounds_completed,
                "pending_timer": repr(self._timer) if self._timer else None,
            }
