"""Live board reconciliation.

Each call is one poll step for one board: read the board, read the game,
map the score onto the grid, and finalize the quarter that just ended if
the period advanced since this process last looked.
"""
import time
from datetime import datetime, timezone
from typing import Dict, Optional

from flask import current_app

from .scoring import compute_winning_cell, compute_winning_owner
from .transitions import detect_quarter_transition
from .types import GameSnapshot


class SnapshotCache:
    """Last observed game snapshot per board, kept for the life of the process.

    Not shared between processes and not locked. Two pollers racing on the
    same board can both see the same transition; finalization is an upsert
    keyed on (board, quarter) with the quarter taken from the snapshots
    themselves, so both attempts write the same row.
    """

    def __init__(self):
        self._snapshots: Dict[str, GameSnapshot] = {}

    def get(self, board_id: str) -> Optional[GameSnapshot]:
        return self._snapshots.get(board_id)

    def set(self, board_id: str, snapshot: GameSnapshot) -> None:
        self._snapshots[board_id] = snapshot

    def __len__(self):
        return len(self._snapshots)


class LiveBoardEngine:
    def __init__(self, repository, provider, cache: Optional[SnapshotCache] = None):
        self.repository = repository
        self.provider = provider
        self.cache = cache if cache is not None else SnapshotCache()

    def get_live_board_snapshot(self, board_id: str, game_id: Optional[str] = None):
        current = self.repository.get_board_with_quarter_winners(board_id)
        board = current['board']
        result = self.provider.get_game_snapshot(
            game_id=game_id,
            board_default_game_id=board.get('default_game_id'),
        )
        game = result.snapshot

        winning_cell = compute_winning_cell(game.home_score, game.away_score, board)
        winning_owner = compute_winning_owner(board['assignments'], winning_cell, board['owners'])

        previous = self.cache.get(board_id)
        finalized_quarter = detect_quarter_transition(previous, game)
        if finalized_quarter is not None:
            self._finalize_quarter(board_id, board, previous, finalized_quarter)

        # Advance regardless of the finalization outcome
        self.cache.set(board_id, game)

        refreshed = self.repository.get_board_with_quarter_winners(board_id)
        return {
            'board': refreshed['board'],
            'game': game.to_dict(),
            'winning_cell': winning_cell.to_dict() if winning_cell else None,
            'winning_owner': winning_owner,
            'quarter_winners': refreshed['quarter_winners'],
            'live_status': result.live_status,
        }

    def _finalize_quarter(self, board_id: str, board, previous: GameSnapshot, quarter: int) -> None:
        # Score as of the end of the quarter, not the current one
        cell = compute_winning_cell(previous.home_score, previous.away_score, board)
        owner = compute_winning_owner(board['assignments'], cell, board['owners'])
        try:
            self.repository.upsert_quarter_winner(
                board_id=board_id,
                quarter=quarter,
                owner_id=owner['id'] if owner else None,
                home_score=previous.home_score,
                away_score=previous.away_score,
                game_period_recorded=quarter,
            )
            current_app.logger.info(
                f"[live-finalize] board={board_id} quarter={quarter} owner={owner['id'] if owner else None} "
                f"score={previous.home_score}-{previous.away_score}"
            )
        except Exception as exc:
            current_app.logger.error(f"[live-finalize-failed] board={board_id} quarter={quarter} error={exc}")


def build_test_live_snapshot(repository, board_id: str, now: Optional[float] = None):
    """Clock-driven fake game for admins previewing a board; leaves engine state alone."""
    now = time.time() if now is None else now
    current = repository.get_board_with_quarter_winners(board_id)
    board = current['board']
    away_score = int(now % 37)
    home_score = int((now / 1.2) % 35)
    period = max(1, min(4, int((now / 90) % 4) + 1))

    winning_cell = compute_winning_cell(home_score, away_score, board)
    winning_owner = compute_winning_owner(board['assignments'], winning_cell, board['owners'])
    game = GameSnapshot(
        game_id='test-mode',
        home_team='Home Testers',
        away_team='Away Testers',
        home_score=home_score,
        away_score=away_score,
        period=period,
        clock='TEST',
        status='live',
        kickoff_at=datetime.fromtimestamp(now + 30 * 60, tz=timezone.utc).isoformat(),
        last_updated_at=datetime.fromtimestamp(now, tz=timezone.utc).isoformat(),
    )
    return {
        'board': board,
        'game': game.to_dict(),
        'winning_cell': winning_cell.to_dict() if winning_cell else None,
        'winning_owner': winning_owner,
        'quarter_winners': current['quarter_winners'],
        'live_status': 'ok',
    }
