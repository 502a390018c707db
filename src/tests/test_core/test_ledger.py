"""
Tests for BetLedger
"""

from decimal import Decimal

import pytest

from core.session import PlayerSession
from core.validators import (
    AlreadyCashedOutError,
    DuplicateBetError,
    InsufficientBalanceError,
    InvalidStateError,
    InvariantViolation,
    NoActiveBetError,
)
from models import BetStatus, RoundStatus


class TestLedgerPlacement:
    """Tests for placing and withdrawing bets"""

    def test_place_debits_stake(self, ledger, session):
        bet = ledger.place(session, 100)

        assert session.balance == 9900
        assert bet.status == BetStatus.ACTIVE
        assert bet.profit is None
        assert ledger.get("alice") is bet
        assert session.active_bet is bet

    def test_place_with_auto_cashout(self, ledger, session):
        bet = ledger.place(session, 100, Decimal("2.0"))
        assert ledger.pending_auto_cashouts() == [bet]

    def test_duplicate_bet_rejected(self, ledger, session):
        ledger.place(session, 100)
        with pytest.raises(DuplicateBetError):
            ledger.place(session, 100)
        assert session.balance == 9900

    def test_duplicate_is_an_invalid_state(self, ledger, session):
        ledger.place(session, 100)
        with pytest.raises(InvalidStateError):
            ledger.place(session, 50)

    @pytest.mark.parametrize("amount", [0, -5, 10001])
    def test_invalid_amount(self, ledger, session, amount):
        with pytest.raises(InsufficientBalanceError):
            ledger.place(session, amount)
        assert session.balance == 10000
        assert len(ledger) == 0

    def test_place_while_running_rejected(self, running_ledger, session):
        ledger = running_ledger()
        with pytest.raises(InvalidStateError):
            ledger.place(session, 100)

    def test_bets_kept_in_placement_order(self, ledger):
        players = [PlayerSession(name) for name in ("carol", "alice", "bob")]
        for player in players:
            ledger.place(player, 10)
        assert [b.user_id for b in ledger.bets()] == ["carol", "alice", "bob"]

    def test_withdraw_refunds_full_stake(self, ledger, session):
        ledger.place(session, 100)
        ledger.withdraw(session)

        assert session.balance == 10000
        assert ledger.get("alice") is None
        assert session.active_bet is None

    def test_withdraw_without_bet(self, ledger, session):
        with pytest.raises(NoActiveBetError):
            ledger.withdraw(session)

    def test_withdraw_while_running(self, ledger, session, running_ledger):
        ledger.place(session, 100)
        running_ledger()
        with pytest.raises(InvalidStateError):
            ledger.withdraw(session)


class TestLedgerCashout:
    """Tests for cashout settlement"""

    def test_cashout_credits_floor_of_payout(self, ledger, session, running_ledger):
        ledger.place(session, 100)
        running_ledger(10.0)

        bet = ledger.cashout(session, 2.5)

        assert session.balance == 10150
        assert bet.profit == 150
        assert bet.cashout_multiplier == 2.5
        assert bet.status == BetStatus.CASHED_OUT

    def test_payout_is_floored(self, ledger, session, running_ledger):
        ledger.place(session, 7)
        running_ledger(10.0)
        bet = ledger.cashout(session, 1.15)
        # 7 * 1.15 = 8.05
        assert bet.payout == 8
        assert session.balance == 10000 - 7 + 8

    def test_second_cashout_rejected(self, ledger, session, running_ledger):
        ledger.place(session, 100)
        running_ledger(10.0)
        ledger.cashout(session, 2.5)

        with pytest.raises(AlreadyCashedOutError):
            ledger.cashout(session, 3.0)
        assert session.balance == 10150

    def test_already_cashed_out_is_no_active_bet(self, ledger, session, running_ledger):
        ledger.place(session, 100)
        running_ledger(10.0)
        ledger.cashout(session, 2.0)
        with pytest.raises(NoActiveBetError):
            ledger.cashout(session, 2.0)

    def test_cashout_without_bet(self, running_ledger, session):
        with pytest.raises(NoActiveBetError):
            running_ledger().cashout(session, 2.0)

    def test_cashout_while_waiting(self, ledger, session):
        ledger.place(session, 100)
        with pytest.raises(InvalidStateError):
            ledger.cashout(session, 1.5)

    def test_cashout_above_crash_point_is_invariant_violation(self, ledger, session, running_ledger):
        ledger.place(session, 100)
        running_ledger(2.0)
        with pytest.raises(InvariantViolation):
            ledger.cashout(session, 2.5)
        assert session.balance == 9900


class TestLedgerSettlement:
    """Tests for crash settlement and refunds"""

    def test_crash_loses_open_bets(self, ledger, session, running_ledger):
        ledger.place(session, 100)
        running_ledger(1.5)
        ledger.round.status = RoundStatus.CRASHED

        lost = ledger.settle_crash({"alice": session})

        assert [b.user_id for b in lost] == ["alice"]
        assert lost[0].profit == -100
        assert lost[0].status == BetStatus.LOST
        assert session.balance == 9900
        assert session.get_stats("rounds_lost") == 1

    def test_crash_keeps_cashed_out_bets(self, ledger, session, running_ledger):
        bob = PlayerSession("bob")
        ledger.place(session, 100)
        ledger.place(bob, 100)
        running_ledger(3.0)
        ledger.cashout(session, 2.0)

        lost = ledger.settle_crash({"alice": session, "bob": bob})

        assert [b.user_id for b in lost] == ["bob"]
        assert ledger.get("alice").profit == 100
        assert ledger.totals() == {"wagered": 200, "paid_out": 200, "house_profit": 0}

    def test_refund_open_returns_stakes(self, ledger, session, running_ledger):
        bob = PlayerSession("bob")
        ledger.place(session, 100)
        ledger.place(bob, 300)
        running_ledger(5.0)
        ledger.cashout(session, 1.5)

        refunded = ledger.refund_open({"alice": session, "bob": bob}, "voided")

        assert [b.user_id for b in refunded] == ["bob"]
        assert bob.balance == 10000
        assert ledger.get("bob").status == BetStatus.REFUNDED
        assert ledger.get("bob").profit == 0
        assert session.balance == 10050
