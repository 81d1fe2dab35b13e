import re
from dataclasses import dataclass, field
from typing import FrozenSet

from flask import current_app

GUEST = 'guest'
BOARD_ADMIN = 'board_admin'


def normalize_owner_name(name: str) -> str:
    return re.sub(r'\s+', ' ', (name or '').strip())


def normalize_name_key(name: str) -> str:
    return normalize_owner_name(name).lower()


def is_reserved_name(name: str) -> bool:
    reserved = current_app.config.get('SUPER_ADMIN_NAME') or ''
    return bool(reserved) and normalize_name_key(name) == normalize_name_key(reserved)


@dataclass(frozen=True)
class Guest:
    """A guest identity resolved once at the request boundary."""
    name: str
    capabilities: FrozenSet[str] = field(default_factory=lambda: frozenset({GUEST}))

    @property
    def is_admin(self) -> bool:
        return BOARD_ADMIN in self.capabilities

    @classmethod
    def from_name(cls, raw_name: str) -> 'Guest':
        name = normalize_owner_name(raw_name)
        if is_reserved_name(name):
            return cls(name=name, capabilities=frozenset({BOARD_ADMIN}))
        return cls(name=name)
