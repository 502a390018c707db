"""
Bet ledger for a single round

Owns the round's bets and applies placement, withdrawal, cashout and crash
settlement against the players' sessions. Callers (the round engine) hold
the engine lock, so each operation sees a consistent round status.
"""

import logging
from decimal import Decimal

from models import Bet, BetStatus, Round
from services import Events, event_bus
from utils.decimal_utils import payout_for, round_multiplier

from .session import PlayerSession
from .validators import (
    InvariantViolation,
    check_multiplier,
    validate_bet_amount,
    validate_cashout,
    validate_place_bet,
    validate_withdraw,
)

logger = logging.getLogger(__name__)


class BetLedger:
    """
    Bets of one round, keyed by user id in placement order

    Responsibilities:
    - Validate and record bets (debiting stakes)
    - Apply cashouts at most once per bet (crediting payouts)
    - Finalize open bets as lost when the round crashes
    - Refund open bets when a round is cancelled
    """

    def __init__(self, round_obj: Round, bus=event_bus):
        self.round = round_obj
        self._bus = bus

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get(self, user_id: str) -> Bet | None:
        return self.round.bets.get(user_id)

    def bets(self) -> list[Bet]:
        return list(self.round.bets.values())

    def open_bets(self) -> list[Bet]:
        return [bet for bet in self.round.bets.values() if bet.is_open]

    def pending_auto_cashouts(self) -> list[Bet]:
        """Open bets with a registered threshold, in placement order"""
        return [bet for bet in self.open_bets() if bet.auto_cashout is not None]

    def totals(self) -> dict[str, int]:
        wagered = sum(bet.amount for bet in self.round.bets.values())
        paid_out = sum(bet.payout for bet in self.round.bets.values())
        return {"wagered": wagered, "paid_out": paid_out, "house_profit": wagered - paid_out}

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def place(self, session: PlayerSession, amount: int, auto_cashout: Decimal | None = None) -> Bet:
        """
        Debit the stake and append an open bet

        Raises:
            InvalidStateError, DuplicateBetError, InsufficientBalanceError
        """
        validate_place_bet(self.round.status, self.get(session.user_id))
        validate_bet_amount(amount, session.balance)

        session.debit(amount, f"Bet placed in {self.round.id}")
        bet = Bet(
            user_id=session.user_id,
            round_id=self.round.id,
            amount=amount,
            auto_cashout=auto_cashout,
        )
        self.round.bets[session.user_id] = bet
        session.attach_bet(bet)

        self._bus.publish(Events.BET_PLACED, bet.to_dict())
        logger.info(
            f"BET: {session.user_id} staked {amount} in {self.round.id}"
            + (f" (auto-cashout {auto_cashout}x)" if auto_cashout is not None else "")
        )
        return bet

    def withdraw(self, session: PlayerSession) -> Bet:
        """
        Remove a bet before the round starts, returning the full stake

        Raises:
            InvalidStateError, NoActiveBetError
        """
        bet = self.get(session.user_id)
        validate_withdraw(self.round.status, bet)

        del self.round.bets[session.user_id]
        session.credit(bet.amount, f"Bet withdrawn from {self.round.id}")
        session.detach_bet(withdrawn=True)

        self._bus.publish(Events.BET_WITHDRAWN, bet.to_dict())
        logger.info(f"WITHDRAW: {session.user_id} took back {bet.amount} from {self.round.id}")
        return bet

    def cashout(self, session: PlayerSession, multiplier: float, auto: bool = False) -> Bet:
        """
        Close the player's bet at multiplier and credit floor(amount * multiplier)

        Raises:
            InvalidStateError, NoActiveBetError, AlreadyCashedOutError
        """
        bet = self.get(session.user_id)
        validate_cashout(self.round.status, bet)
        check_multiplier(multiplier)

        crash_point = self.round.crash_point
        if crash_point is not None and multiplier > crash_point:
            raise InvariantViolation(
                f"Cashout at {multiplier}x above crash point {crash_point}x in {self.round.id}"
            )

        payout = payout_for(bet.amount, multiplier)
        profit = payout - bet.amount
        if profit < 0:
            raise InvariantViolation(f"Negative cashout profit {profit} for {session.user_id}")

        bet.cashout_multiplier = multiplier
        bet.profit = profit
        bet.status = BetStatus.CASHED_OUT
        session.credit(payout, f"Cashout at {round_multiplier(multiplier)}x in {self.round.id}")
        session.record_settlement(bet)

        self._bus.publish(Events.BET_CASHED_OUT, {**bet.to_dict(), "auto": auto})
        logger.info(
            f"{'AUTO-' if auto else ''}CASHOUT: {session.user_id} at "
            f"{round_multiplier(multiplier)}x, payout {payout} (profit {profit})"
        )
        return bet

    def settle_crash(self, sessions: dict[str, PlayerSession]) -> list[Bet]:
        """
        Finalize every open bet as lost (profit = -amount, no credit)

        Returns:
            The bets settled by this call
        """
        lost = []
        for bet in self.open_bets():
            bet.profit = -bet.amount
            bet.status = BetStatus.LOST
            session = sessions.get(bet.user_id)
            if session is not None:
                session.record_settlement(bet)
            lost.append(bet)
            self._bus.publish(Events.BET_LOST, bet.to_dict())

        if lost:
            logger.info(f"{len(lost)} bet(s) lost in {self.round.id} at {self.round.crash_point:.2f}x")
        return lost

    def refund_open(self, sessions: dict[str, PlayerSession], reason: str) -> list[Bet]:
        """
        Return the stake of every open bet (profit = 0); settled bets stand

        Used when a round is cancelled before it can crash.
        """
        refunded = []
        for bet in self.open_bets():
            session = sessions.get(bet.user_id)
            if session is None:
                raise InvariantViolation(f"No session for open bet of {bet.user_id}")
            bet.profit = 0
            bet.status = BetStatus.REFUNDED
            session.credit(bet.amount, f"Refund ({reason}) in {self.round.id}")
            session.record_settlement(bet)
            refunded.append(bet)
            self._bus.publish(Events.BET_REFUNDED, {**bet.to_dict(), "reason": reason})

        if refunded:
            logger.info(f"Refunded {len(refunded)} bet(s) in {self.round.id} ({reason})")
        return refunded

    def __len__(self) -> int:
        return len(self.round.bets)
