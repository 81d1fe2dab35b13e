from typing import Optional

from .types import GameSnapshot


def detect_quarter_transition(previous: Optional[GameSnapshot], current: GameSnapshot) -> Optional[int]:
    """Return the quarter that just ended, or None.

    Period N -> anything greater finalizes N (4 -> 5 finalizes the fourth
    quarter as regulation rolls into OT). A jump of more than one period
    still finalizes only ``previous.period``. A lower period is ignored so a
    provider glitch never re-finalizes or regresses.
    """
    if previous is None:
        return None
    if current.period <= previous.period:
        return None
    return previous.period
