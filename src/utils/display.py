"""
Presentation helpers for renderers reading round snapshots.

Nothing in core depends on these; they only turn full-precision values into
the strings and colour buckets a UI shows.
"""

from models.enums import RoundStatus

WHITE = "#FFFFFF"
GREEN = "#00E701"
GOLD = "#FFC300"
RED = "#FF5353"


def format_multiplier(multiplier: float) -> str:
    """2 decimals below 10x, 1 decimal below 100x, integer from 100x up"""
    if multiplier >= 100:
        return f"{multiplier:.0f}x"
    if multiplier >= 10:
        return f"{multiplier:.1f}x"
    return f"{multiplier:.2f}x"


def multiplier_color(multiplier: float) -> str:
    if multiplier < 1.2:
        return WHITE
    if multiplier < 2:
        return GREEN
    if multiplier < 10:
        return GOLD
    return RED


def status_text(status: RoundStatus | str, multiplier: float) -> str:
    """Headline text for the current round state"""
    status = RoundStatus(status)
    if status == RoundStatus.WAITING:
        return "STARTING SOON"
    if status == RoundStatus.RUNNING:
        return format_multiplier(multiplier)
    return f"CRASHED @ {format_multiplier(multiplier)}"
