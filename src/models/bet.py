"""
Bet data model
"""

from dataclasses import dataclass
from decimal import Decimal

from .enums import BetStatus


@dataclass
class Bet:
    """
    A single player's stake in one round

    Attributes:
        user_id: Player placing the bet
        round_id: Round the bet belongs to
        amount: Stake in whole currency units (debited at placement)
        auto_cashout: Optional multiplier at which the engine cashes out
        cashout_multiplier: Multiplier the bet was cashed out at (set once)
        profit: Net result once settled; None while the bet is open
        status: active / cashed_out / lost / refunded
    """

    user_id: str
    round_id: str
    amount: int
    auto_cashout: Decimal | None = None
    cashout_multiplier: float | None = None
    profit: int | None = None
    status: BetStatus = BetStatus.ACTIVE

    @property
    def is_open(self) -> bool:
        return self.status == BetStatus.ACTIVE

    @property
    def payout(self) -> int:
        """Gross amount returned to the player (0 for a lost bet, stake for a refund)"""
        if self.profit is None:
            return 0
        return self.amount + self.profit

    def to_dict(self, preserve_precision: bool = False) -> dict:
        """Convert to dictionary

        Args:
            preserve_precision: If True, keep Decimals as strings
        """

        def convert(value):
            if isinstance(value, Decimal):
                return str(value) if preserve_precision else float(value)
            return value

        return {
            "user_id": self.user_id,
            "round_id": self.round_id,
            "amount": self.amount,
            "auto_cashout": convert(self.auto_cashout),
            "cashout_multiplier": self.cashout_multiplier,
            "profit": self.profit,
            "status": self.status.value,
        }
