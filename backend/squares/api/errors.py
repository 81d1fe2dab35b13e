from flask import jsonify

# PickError code -> (HTTP status, client-facing code)
PICK_ERROR_STATUS = {
    'OWNER_NOT_FOUND': (404, 'OWNER_NOT_FOUND'),
    'ADMIN_FORBIDDEN': (403, 'FORBIDDEN'),
    'OWNER_LIMIT_REACHED': (409, 'OWNER_LIMIT_REACHED'),
    'INITIALS_TAKEN': (409, 'INITIALS_TAKEN'),
    'CELL_TAKEN': (409, 'CELL_TAKEN'),
    'PICK_LIMIT_REACHED': (409, 'PICK_LIMIT_REACHED'),
    'PICKS_LOCKED': (409, 'PICKS_LOCKED'),
    'PICKS_INCOMPLETE': (409, 'PICKS_INCOMPLETE'),
    'INVALID_CELL': (400, 'BAD_REQUEST'),
    'INVALID_ACTION': (400, 'BAD_REQUEST'),
}


def api_ok(data, status=200, **extra):
    body = {'ok': True, 'data': data}
    body.update(extra)
    return jsonify(body), status


def api_error(status: int, error: str, code: str = None):
    return jsonify({'ok': False, 'error': error, 'code': code}), status


def pick_error_response(exc):
    status, code = PICK_ERROR_STATUS.get(exc.code, (500, 'INTERNAL'))
    return api_error(status, str(exc), code)
