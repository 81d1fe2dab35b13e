from dataclasses import asdict, dataclass
from typing import Optional

GAME_STATUSES = ('pre', 'live', 'final', 'fallback')


@dataclass(frozen=True)
class GameSnapshot:
    game_id: str
    home_team: str
    away_team: str
    home_score: int
    away_score: int
    period: int
    clock: str
    status: str
    kickoff_at: Optional[str]
    last_updated_at: str

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class WinningCell:
    row: int
    col: int
    row_marker: int
    col_marker: int

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class GameResult:
    """A snapshot plus whether it came from the provider ('ok') or was synthesized ('fallback')."""
    snapshot: GameSnapshot
    live_status: str
