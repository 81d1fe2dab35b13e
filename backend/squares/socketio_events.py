from flask_socketio import join_room, leave_room, emit
from pydantic import ValidationError

from squares.api.validation import parse_board_id


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def _room_for(data):
    board_id = (data or {}).get('board_id')
    if not board_id:
        emit('error', {'message': 'board_id is required'})
        return None
    try:
        return f"board:{parse_board_id(board_id)}"
    except ValidationError:
        emit('error', {'message': 'invalid board_id'})
        return None


def handle_join_board(data):
    """Subscribe this socket to ``board_update`` events for one board."""
    room = _room_for(data)
    if not room:
        return
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_board(data):
    room = _room_for(data)
    if not room:
        return
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from squares import socketio

    handlers = {
        'connect': handle_connect,
        'join_board': handle_join_board,
        'leave_board': handle_leave_board,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
