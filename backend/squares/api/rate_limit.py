import time
from typing import Any, Dict, Optional, Tuple

_hits: Dict[str, float] = {}
# board id -> (last composed live snapshot, cached at epoch seconds)
_live_snapshots: Dict[str, Tuple[Any, float]] = {}


def client_ip(req) -> str:
    forwarded = (req.headers.get('X-Forwarded-For') or '').split(',')[0].strip()
    return forwarded or req.headers.get('X-Real-IP') or req.remote_addr or 'unknown'


def is_rate_limited(key: str, interval_ms: int) -> bool:
    now = time.time() * 1000.0
    last = _hits.get(key, 0)
    if now - last < interval_ms:
        return True
    _hits[key] = now
    return False


def cache_live_snapshot(board_id: str, data) -> None:
    _live_snapshots[board_id] = (data, time.time())


def get_cached_live_snapshot(board_id: str) -> Optional[Tuple[Any, float]]:
    return _live_snapshots.get(board_id)


def reset() -> None:
    _hits.clear()
    _live_snapshots.clear()
