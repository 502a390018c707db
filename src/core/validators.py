"""
Input validation and error taxonomy

Rejections (ValidationError and subclasses) are local, recoverable and
user-facing: the round keeps running. InvariantViolation marks a programming
defect (negative balance, non-finite multiplier, ...) and must never be
caught and ignored.
"""

from decimal import Decimal

from config import config
from models import Bet, RoundStatus
from utils.decimal_utils import is_finite_number, to_decimal


class ValidationError(Exception):
    """Raised when a player operation is rejected"""

    pass


class InvalidStateError(ValidationError):
    """Operation not valid for the current round status"""

    pass


class DuplicateBetError(InvalidStateError):
    """Player already has a bet in this round"""

    pass


class InsufficientBalanceError(ValidationError):
    """Stake is non-positive or exceeds the player's balance"""

    pass


class InvalidAutoCashoutError(ValidationError):
    """Auto-cashout threshold is not a finite multiplier above the minimum"""

    pass


class NoActiveBetError(ValidationError):
    """Player has no open bet to act on"""

    pass


class AlreadyCashedOutError(NoActiveBetError):
    """Bet was already cashed out; a second cashout must not credit again"""

    pass


class UnknownPlayerError(ValidationError):
    """No session registered for this user id"""

    pass


class InvariantViolation(RuntimeError):
    """Programming defect: state the engine must never reach"""

    pass


def validate_bet_amount(amount: int, balance: int) -> None:
    """
    Validate a stake is a positive whole amount the player can afford

    Raises:
        InsufficientBalanceError
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InsufficientBalanceError(f"Bet amount must be a whole number of units, got {amount!r}")

    if amount <= 0:
        raise InsufficientBalanceError(f"Bet amount {amount} must be positive")

    if amount > balance:
        raise InsufficientBalanceError(f"Insufficient balance: have {balance}, need {amount}")


def validate_auto_cashout(threshold) -> Decimal | None:
    """
    Normalize an optional auto-cashout threshold to Decimal

    Raises:
        InvalidAutoCashoutError
    """
    if threshold is None:
        return None

    if not is_finite_number(threshold):
        raise InvalidAutoCashoutError(f"Auto-cashout must be a finite number, got {threshold!r}")

    value = to_decimal(threshold)
    minimum = config.get("game_rules", "min_auto_cashout")
    if value < minimum:
        raise InvalidAutoCashoutError(f"Auto-cashout {value} below minimum {minimum}x")
    return value


def validate_place_bet(status: RoundStatus, existing_bet: Bet | None) -> None:
    """
    Raises:
        InvalidStateError: round is not accepting bets
        DuplicateBetError: player already has a bet this round
    """
    if not RoundStatus.accepts_bets(status):
        raise InvalidStateError(f"Bets are only accepted while waiting (round is {status.value})")
    if existing_bet is not None:
        raise DuplicateBetError("Player already has a bet in this round")


def validate_withdraw(status: RoundStatus, bet: Bet | None) -> None:
    if not RoundStatus.accepts_bets(status):
        raise InvalidStateError(f"Bets can only be withdrawn while waiting (round is {status.value})")
    if bet is None:
        raise NoActiveBetError("No bet to withdraw")


def validate_cashout(status: RoundStatus, bet: Bet | None) -> None:
    """
    Raises:
        InvalidStateError: round is not running
        NoActiveBetError: player has no bet this round
        AlreadyCashedOutError: bet already cashed out
    """
    if not RoundStatus.accepts_cashouts(status):
        raise InvalidStateError(f"Cashout is only allowed while running (round is {status.value})")
    if bet is None:
        raise NoActiveBetError("No active bet to cash out")
    if bet.cashout_multiplier is not None:
        raise AlreadyCashedOutError(f"Bet already cashed out at {bet.cashout_multiplier:.2f}x")
    if not bet.is_open:
        raise NoActiveBetError(f"Bet is already settled ({bet.status.value})")


def check_multiplier(multiplier: float) -> float:
    """Fail loudly on a multiplier that no valid computation can produce"""
    if not is_finite_number(multiplier) or multiplier < 1.0:
        raise InvariantViolation(f"Multiplier must be finite and >= 1.0, got {multiplier!r}")
    return multiplier
