"""
Read-only views handed to renderers and other external collaborators.

These are pydantic models so consumers get validated, immutable payloads
that serialize straight to JSON (model_dump(mode="json")).
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import BetStatus, RoundStatus


class BetView(BaseModel):
    """Public view of one bet in the current round."""

    model_config = ConfigDict(frozen=True)

    userId: str = Field(..., description="Player id")
    amount: int = Field(..., gt=0, description="Stake in currency units")
    autoCashout: Decimal | None = Field(None, description="Registered auto-cashout threshold")
    cashoutMultiplier: float | None = Field(None, ge=1.0, description="Set once cashed out")
    profit: int | None = Field(None, description="Net result once settled")
    status: BetStatus


class RoundSnapshot(BaseModel):
    """
    Pull-based snapshot of the authoritative round.

    crashPoint is only populated once the round has crashed.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    status: RoundStatus
    multiplier: float = Field(..., ge=1.0)
    crashPoint: float | None = Field(None, ge=1.0)
    startTime: float = Field(..., description="Scheduler ms; scheduled start while waiting")
    crashTime: float | None = None
    bets: tuple[BetView, ...] = ()

    @field_validator("crashPoint")
    @classmethod
    def hide_unless_crashed(cls, v, info):
        if v is not None and info.data.get("status") != RoundStatus.CRASHED:
            raise ValueError("crashPoint must stay hidden until the round crashes")
        return v


class GameHistoryEntry(BaseModel):
    """Summary of a completed round (display only, not authoritative)."""

    model_config = ConfigDict(frozen=True)

    roundId: str
    crashPoint: float = Field(..., ge=1.0)
    timestamp: datetime
