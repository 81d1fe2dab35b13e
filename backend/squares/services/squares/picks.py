"""Guest claim / pick / lock state machine and admin reset actions.

Owner lifecycle: unclaimed -> claimed (picking allowed) -> locked (terminal).

Every mutation of a board runs under a per-board process lock plus a
``SELECT ... FOR UPDATE`` of the board row, and the board's ``version``
column rejects a write computed from a stale read. Between them, the
"is this cell free" check and the write that claims it always see the same
matrix, inside one process or across several.
"""
import json
import re
import threading
import weakref
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from squares import db
from squares.models import GRID_SIZE, Board, BoardOwner, QuarterWinner, empty_assignment_matrix
from .defaults import DEFAULT_OWNER_BG, DEFAULT_OWNER_TEXT, DEMO_OWNERS, seed_demo_assignments, shuffled_markers
from .errors import PickError
from .identity import Guest, normalize_name_key, normalize_owner_name
from .repository import load_or_create_board, visible_owners

ADMIN_ACTIONS = ('clear_picks', 'clear_winners', 'clear_all', 'seed_demo')
WRITE_ATTEMPTS = 3

_board_locks = weakref.WeakValueDictionary()
_board_locks_guard = threading.Lock()


def _board_lock(board_id: str) -> threading.Lock:
    # Entries vanish once no request holds the lock
    with _board_locks_guard:
        lock = _board_locks.get(board_id)
        if lock is None:
            lock = threading.Lock()
            _board_locks[board_id] = lock
        return lock


def _log_stale_retry(retry_state):
    board_id = retry_state.args[0] if retry_state.args else None
    current_app.logger.info(f"[board-tx-retry] board={board_id} attempt={retry_state.attempt_number}")


@retry(
    retry=retry_if_exception_type(StaleDataError),
    stop=stop_after_attempt(WRITE_ATTEMPTS),
    before_sleep=_log_stale_retry,
    reraise=True,
)
def _write_locked_board(board_id: str, mutate):
    board = (
        Board.query.filter_by(id=board_id)
        .with_for_update()
        .populate_existing()
        .one()
    )
    try:
        result = mutate(board)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return result


def run_in_board_transaction(board_id: str, mutate):
    """Call ``mutate(board)`` on the freshly row-locked board and commit.

    A write computed from a stale read (version mismatch) is retried against
    the current row; any other error rolls the whole unit back.
    """
    load_or_create_board(board_id)
    with _board_lock(board_id):
        return _write_locked_board(board_id, mutate)


def _max_owners() -> int:
    return int(current_app.config.get('MAX_OWNERS_PER_BOARD', 6))


def _max_picks() -> int:
    return int(current_app.config.get('MAX_PICKS_PER_OWNER', 16))


def name_to_initials(name: str) -> str:
    parts = (name or '').split()[:2]
    initials = re.sub(r'[^A-Z0-9]', '', ''.join(p[0].upper() for p in parts))
    return initials[:4] or 'GU'


def safe_initials(initials, fallback_name: str) -> str:
    clean = re.sub(r'[^A-Z0-9]', '', (initials or '').strip().upper())[:4]
    return clean or name_to_initials(fallback_name)


def count_picks(matrix, initials: str) -> int:
    return sum(1 for row in matrix for cell in row if (cell or '').strip() == initials)


def _find_owner(board_id: str, guest_name: str):
    # Matched in Python: SQL lower() folds only ASCII on SQLite and follows the locale on Postgres
    key = normalize_name_key(guest_name)
    owners = BoardOwner.query.filter_by(board_id=board_id).populate_existing().all()
    for owner in owners:
        if normalize_name_key(owner.display_name) == key:
            return owner
    return None


def _touch(board: Board) -> None:
    # Forces an UPDATE (and version bump) even when the matrix is unchanged
    flag_modified(board, 'assignments')
    db.session.add(board)


def claim_guest_owner(board_id: str, guest: Guest, initials=None, bg_color=None, text_color=None):
    """Bind the guest to an owner slot, returning the existing one for a known name."""
    if guest.is_admin:
        raise PickError('ADMIN_FORBIDDEN', 'Admin user cannot claim an owner slot.')
    guest_name = normalize_owner_name(guest.name)
    requested = safe_initials(initials, guest_name)
    created = []

    def _claim(board):
        db.session.expire(board, ['owners'])
        owners = visible_owners(board)
        for existing in owners:
            if normalize_name_key(existing.display_name) == normalize_name_key(guest_name):
                return existing.to_dict()
        if len(owners) >= _max_owners():
            raise PickError('OWNER_LIMIT_REACHED', f'Board owner limit ({_max_owners()}) reached.')
        if any(o.initials == requested for o in board.owners):
            raise PickError('INITIALS_TAKEN', 'Initials already taken.')
        owner = BoardOwner(
            board_id=board_id,
            initials=requested,
            display_name=guest_name,
            bg_color=bg_color or DEFAULT_OWNER_BG,
            text_color=text_color or DEFAULT_OWNER_TEXT,
            sort_order=len(owners),
            locked_at=None,
        )
        db.session.add(owner)
        _touch(board)
        db.session.flush()
        created.append(owner.id)
        return owner.to_dict()

    try:
        result = run_in_board_transaction(board_id, _claim)
    except IntegrityError:
        raise PickError('INITIALS_TAKEN', 'Initials already taken.')

    if created:
        current_app.logger.info(f"[claim] board={board_id} owner={result['id']} initials={result['initials']}")
    return result


def set_guest_pick(board_id: str, guest: Guest, row: int, col: int, selected: bool):
    """Select or clear one cell for the guest's owner and return the new matrix."""

    def _pick(board):
        owner = _find_owner(board_id, guest.name)
        if not owner:
            raise PickError('OWNER_NOT_FOUND', 'Owner not found for guest.')
        if owner.locked_at:
            raise PickError('PICKS_LOCKED', 'Picks are locked and can no longer be changed.')
        if not (0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE):
            raise PickError('INVALID_CELL', 'Invalid cell coordinates.')

        matrix = board.get_assignments()
        current = (matrix[row][col] or '').strip()
        if selected:
            if current and current != owner.initials:
                raise PickError('CELL_TAKEN', 'Cell is already taken.')
            if current != owner.initials and count_picks(matrix, owner.initials) >= _max_picks():
                raise PickError('PICK_LIMIT_REACHED', 'Pick limit reached for this guest.')
            matrix[row][col] = owner.initials
        elif current == owner.initials:
            matrix[row][col] = ''
        board.set_assignments(matrix)
        _touch(board)
        return owner.id, matrix

    owner_id, matrix = run_in_board_transaction(board_id, _pick)
    current_app.logger.info(f"[pick] board={board_id} owner={owner_id} cell=({row},{col}) selected={selected}")
    return matrix


def lock_guest_picks(board_id: str, guest: Guest):
    """Freeze the guest's picks once all of them are placed. Locking twice is a no-op."""

    def _lock(board):
        owner = _find_owner(board_id, guest.name)
        if not owner:
            raise PickError('OWNER_NOT_FOUND', 'Owner not found for guest.')
        if owner.locked_at:
            return owner.to_dict()
        if count_picks(board.get_assignments(), owner.initials) < _max_picks():
            raise PickError('PICKS_INCOMPLETE', 'You must place all picks before locking.')
        owner.locked_at = datetime.now(timezone.utc)
        db.session.add(owner)
        _touch(board)
        db.session.flush()
        current_app.logger.info(f"[lock] board={board_id} owner={owner.id}")
        return owner.to_dict()

    return run_in_board_transaction(board_id, _lock)


def run_guest_admin_action(board_id: str, action: str):
    """Run one board-scoped reset; all of its writes commit together or not at all."""
    if action not in ADMIN_ACTIONS:
        raise PickError('INVALID_ACTION', f'Unknown admin action: {action}')

    def _run(board):
        if action in ('clear_winners', 'clear_all', 'seed_demo'):
            QuarterWinner.query.filter_by(board_id=board_id).delete()
        if action in ('clear_all', 'seed_demo'):
            BoardOwner.query.filter_by(board_id=board_id).delete()
            board.row_markers = json.dumps(shuffled_markers())
            board.column_markers = json.dumps(shuffled_markers())
        if action in ('clear_picks', 'clear_all'):
            board.set_assignments(empty_assignment_matrix())
        if action == 'seed_demo':
            now = datetime.now(timezone.utc)
            for idx, demo in enumerate(DEMO_OWNERS):
                db.session.add(BoardOwner(board_id=board_id, sort_order=idx, locked_at=now, **demo))
            board.set_assignments(seed_demo_assignments([d['initials'] for d in DEMO_OWNERS], _max_picks()))
        _touch(board)

    run_in_board_transaction(board_id, _run)
    db.session.expire_all()
    current_app.logger.info(f"[admin-action] board={board_id} action={action}")
    return {'action': action, 'ok': True}
