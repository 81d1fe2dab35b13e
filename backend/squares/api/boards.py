from datetime import datetime, timezone
from functools import wraps

from flask import Blueprint, current_app, request
from pydantic import ValidationError

from squares import socketio
from squares.env import ConfigError, validate_admin_config, validate_database_config, warn_missing_optional_config
from squares.services.squares import repository
from squares.services.squares.errors import PickError
from squares.services.squares.live import build_test_live_snapshot
from squares.services.squares.picks import (
    claim_guest_owner,
    lock_guest_picks,
    run_guest_admin_action,
    set_guest_pick,
)
from .auth import is_valid_admin_token, resolve_guest
from .errors import api_error, api_ok, pick_error_response
from .rate_limit import cache_live_snapshot, client_ip, get_cached_live_snapshot, is_rate_limited
from .validation import BoardPatch, GuestAdminAction, GuestClaim, GuestPick, LiveQuery, parse_board_id

boards = Blueprint('boards', __name__)


def api_handler(failure_message: str, bad_request_message: str = 'Invalid request payload.'):
    """Map validation, domain, config and unexpected errors onto the response envelope."""
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except ValidationError:
                return api_error(400, bad_request_message, 'BAD_REQUEST')
            except PickError as exc:
                return pick_error_response(exc)
            except ConfigError as exc:
                current_app.logger.error(f"[config] {exc}")
                return api_error(500, str(exc), exc.code)
            except Exception:
                current_app.logger.exception(f"[internal] {request.method} {request.path}")
                return api_error(500, failure_message, 'INTERNAL')
        return wrapper
    return decorator


def _json_body():
    return request.get_json(silent=True)


def _broadcast(board_id: str) -> None:
    socketio.emit('board_update', {'board_id': board_id}, to=f"board:{board_id}", namespace='/ws')


@boards.route('/<string:board_id>', methods=['GET'])
@api_handler('Failed to load board.', 'Invalid board id.')
def get_board(board_id):
    validate_database_config()
    warn_missing_optional_config()
    board_id = parse_board_id(board_id)
    return api_ok(repository.get_or_create_board(board_id))


@boards.route('/<string:board_id>', methods=['PATCH'])
@api_handler('Failed to update board.')
def patch_board(board_id):
    validate_database_config()
    validate_admin_config()
    if not is_valid_admin_token(request):
        current_app.logger.warning(f"[unauthorized] board patch path={request.path}")
        return api_error(401, 'Unauthorized.', 'UNAUTHORIZED')

    board_id = parse_board_id(board_id)
    body = _json_body()
    if body is None:
        return api_error(400, 'Invalid JSON body.', 'BAD_REQUEST')
    patch = BoardPatch.model_validate(body).to_patch()

    board = repository.patch_board(board_id, patch)
    _broadcast(board_id)
    return api_ok(board)


@boards.route('/<string:board_id>/reset', methods=['POST'])
@api_handler('Failed to reset board quarter winners.', 'Invalid board id.')
def reset_board(board_id):
    validate_database_config()
    validate_admin_config()
    if not is_valid_admin_token(request):
        current_app.logger.warning(f"[unauthorized] board reset path={request.path}")
        return api_error(401, 'Unauthorized.', 'UNAUTHORIZED')

    board_id = parse_board_id(board_id)
    repository.reset_quarter_winners(board_id)
    _broadcast(board_id)
    return api_ok({'board_id': board_id, 'reset': True})


@boards.route('/<string:board_id>/live', methods=['GET'])
@api_handler('Failed to load live board snapshot.', 'Invalid request query.')
def get_live_board(board_id):
    validate_database_config()
    warn_missing_optional_config()
    board_id = parse_board_id(board_id)

    interval_ms = int(current_app.config.get('LIVE_RATE_LIMIT_MS', 750))
    if is_rate_limited(f"{board_id}:{client_ip(request)}", interval_ms):
        cached = get_cached_live_snapshot(board_id)
        if cached:
            data, cached_at = cached
            return api_ok(data, meta={
                'stale': True,
                'rate_limited': True,
                'cached_at': datetime.fromtimestamp(cached_at, tz=timezone.utc).isoformat(),
            })
        return api_error(429, 'Too many requests.', 'RATE_LIMITED')

    query = LiveQuery.model_validate(request.args.to_dict())
    if query.test_mode == '1':
        guest = resolve_guest(request)
        if not guest or not guest.is_admin:
            return api_error(403, 'Test mode is restricted.', 'FORBIDDEN')
        data = build_test_live_snapshot(repository, board_id)
    else:
        engine = current_app.extensions['live_engine']
        data = engine.get_live_board_snapshot(board_id, game_id=query.game_id)

    cache_live_snapshot(board_id, data)
    return api_ok(data)


@boards.route('/<string:board_id>/guest/claim', methods=['POST'])
@api_handler('Failed to claim owner.')
def guest_claim(board_id):
    validate_database_config()
    board_id = parse_board_id(board_id)
    guest = resolve_guest(request)
    if not guest:
        return api_error(401, 'Guest authentication required.', 'UNAUTHORIZED')
    body = _json_body()
    if body is None:
        return api_error(400, 'Invalid JSON body.', 'BAD_REQUEST')
    parsed = GuestClaim.model_validate(body)

    owner = claim_guest_owner(
        board_id,
        guest,
        initials=parsed.initials,
        bg_color=parsed.bg_color,
        text_color=parsed.text_color,
    )
    _broadcast(board_id)
    return api_ok(owner)


@boards.route('/<string:board_id>/guest/pick', methods=['POST'])
@api_handler('Failed to update guest pick.')
def guest_pick(board_id):
    validate_database_config()
    board_id = parse_board_id(board_id)
    guest = resolve_guest(request)
    if not guest:
        return api_error(401, 'Guest authentication required.', 'UNAUTHORIZED')
    body = _json_body()
    if body is None:
        return api_error(400, 'Invalid JSON body.', 'BAD_REQUEST')
    parsed = GuestPick.model_validate(body)

    set_guest_pick(board_id, guest, parsed.row, parsed.col, parsed.selected)
    _broadcast(board_id)
    return api_ok({'board_id': board_id, 'row': parsed.row, 'col': parsed.col, 'selected': parsed.selected})


@boards.route('/<string:board_id>/guest/lock', methods=['POST'])
@api_handler('Failed to lock picks.')
def guest_lock(board_id):
    validate_database_config()
    board_id = parse_board_id(board_id)
    guest = resolve_guest(request)
    if not guest:
        return api_error(401, 'Guest authentication required.', 'UNAUTHORIZED')

    owner = lock_guest_picks(board_id, guest)
    _broadcast(board_id)
    return api_ok(owner)


@boards.route('/<string:board_id>/guest/admin', methods=['POST'])
@api_handler('Failed to run admin action.')
def guest_admin_action(board_id):
    validate_database_config()
    board_id = parse_board_id(board_id)
    guest = resolve_guest(request)
    if not guest:
        return api_error(401, 'Guest authentication required.', 'UNAUTHORIZED')
    if not guest.is_admin:
        return api_error(403, 'Admin testing actions are restricted.', 'FORBIDDEN')
    body = _json_body()
    if body is None:
        return api_error(400, 'Invalid JSON body.', 'BAD_REQUEST')
    parsed = GuestAdminAction.model_validate(body)

    result = run_guest_admin_action(board_id, parsed.action)
    _broadcast(board_id)
    return api_ok(result)
