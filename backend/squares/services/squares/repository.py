"""Durable board storage.

Every read lazily creates the board so embeds can reference any valid id.
Boards are returned as plain dicts; the reserved admin identity never
appears in an owner roster.
"""
import json

from flask import current_app
from sqlalchemy.exc import IntegrityError
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from squares import db
from squares.models import Board, BoardOwner, QuarterWinner
from .defaults import build_default_board
from .identity import is_reserved_name


def _defaults(board_id: str):
    return build_default_board(board_id, current_app.config.get('DEFAULT_GAME_ID'))


def load_or_create_board(board_id: str, for_update: bool = False) -> Board:
    query = Board.query.filter_by(id=board_id)
    if for_update:
        query = query.with_for_update()
    board = query.first()
    if board:
        return board
    defaults = _defaults(board_id)
    board = Board(
        id=board_id,
        name=defaults['name'],
        default_game_id=defaults['default_game_id'],
        top_team_label=defaults['top_team_label'],
        side_team_label=defaults['side_team_label'],
        column_markers=json.dumps(defaults['column_markers']),
        row_markers=json.dumps(defaults['row_markers']),
        assignments=json.dumps(defaults['assignments']),
        theme_defaults=json.dumps(defaults['theme_defaults']),
    )
    db.session.add(board)
    try:
        db.session.commit()
    except IntegrityError:
        # Another request created it first
        db.session.rollback()
    query = Board.query.filter_by(id=board_id)
    if for_update:
        query = query.with_for_update()
    return query.one()


def visible_owners(board: Board):
    return [o for o in board.owners if not is_reserved_name(o.display_name)]


def board_config(board: Board):
    return board.to_dict(_defaults(board.id), visible_owners(board))


def get_or_create_board(board_id: str):
    return board_config(load_or_create_board(board_id))


def get_board_with_quarter_winners(board_id: str):
    board = load_or_create_board(board_id)
    # Pick up writes committed by other sessions since the last read
    db.session.expire(board)
    return {
        'board': board_config(board),
        'quarter_winners': [qw.to_dict() for qw in board.quarter_winners],
    }


_PATCHABLE = (
    'name',
    'default_game_id',
    'top_team_label',
    'side_team_label',
)
_PATCHABLE_JSON = (
    'column_markers',
    'row_markers',
    'assignments',
    'theme_defaults',
)


def patch_board(board_id: str, patch: dict):
    """Apply a partial update; ``owners`` (if given) replaces the roster."""
    board = load_or_create_board(board_id)
    try:
        for key in _PATCHABLE:
            if key in patch:
                setattr(board, key, patch[key])
        for key in _PATCHABLE_JSON:
            if key in patch and patch[key] is not None:
                setattr(board, key, json.dumps(patch[key]))
        if patch.get('owners') is not None:
            BoardOwner.query.filter_by(board_id=board_id).delete()
            for owner in patch['owners']:
                db.session.add(BoardOwner(
                    board_id=board_id,
                    initials=owner['initials'],
                    display_name=owner['display_name'],
                    bg_color=owner['bg_color'],
                    text_color=owner['text_color'],
                    sort_order=owner['sort_order'],
                ))
        db.session.add(board)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.expire_all()
    return get_or_create_board(board_id)


def _log_upsert_retry(retry_state):
    current_app.logger.info(
        f"[quarter-winner-retry] attempt={retry_state.attempt_number} error={retry_state.outcome.exception()}"
    )


@retry(
    retry=retry_if_exception_type(IntegrityError),
    stop=stop_after_attempt(2),
    before_sleep=_log_upsert_retry,
    reraise=True,
)
def upsert_quarter_winner(board_id: str, quarter: int, owner_id, home_score: int, away_score: int,
                          game_period_recorded: int):
    """Write the single winner row for (board_id, quarter), creating or overwriting it.

    Losing the insert race on (board_id, quarter) is retried once as an update
    of the winner's row.
    """
    values = {
        'owner_id': owner_id,
        'home_score': home_score,
        'away_score': away_score,
        'game_period_recorded': game_period_recorded,
    }
    record = QuarterWinner.query.filter_by(board_id=board_id, quarter=quarter).first()
    if record is None:
        record = QuarterWinner(board_id=board_id, quarter=quarter, **values)
    else:
        for key, value in values.items():
            setattr(record, key, value)
    db.session.add(record)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return record.to_dict()


def reset_quarter_winners(board_id: str) -> None:
    load_or_create_board(board_id)
    try:
        QuarterWinner.query.filter_by(board_id=board_id).delete()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.expire_all()
