import hmac
from typing import Optional

from squares.env import require_config
from squares.services.squares.identity import Guest
from .validation import parse_guest_name

GUEST_HEADER = 'X-Guest-Name'
ADMIN_TOKEN_HEADER = 'X-Admin-Token'


def resolve_guest(req) -> Optional[Guest]:
    """Map the guest header to an identity and its capabilities, or None if absent.

    Raises ``pydantic.ValidationError`` for a name longer than an owner's
    display name can hold.
    """
    name = (req.headers.get(GUEST_HEADER) or '').strip()
    if not name:
        return None
    return Guest.from_name(parse_guest_name(name))


def is_valid_admin_token(req) -> bool:
    expected = require_config('ADMIN_TOKEN')
    provided = req.headers.get(ADMIN_TOKEN_HEADER) or ''
    return bool(provided) and hmac.compare_digest(provided.encode(), str(expected).encode())
