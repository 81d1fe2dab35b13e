import json
import time
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

import httpx
from flask import current_app

from squares.services.squares.types import GameResult
from .normalize import build_fallback_snapshot, normalize_espn_event, unwrap_summary

ESPN_BASE_URL = 'https://site.api.espn.com/apis/site/v2/sports/football/nfl'
SUMMARY_PATH = '/summary'
SCOREBOARD_PATH = '/scoreboard'
# Super Bowl LVIII; used when nothing else resolves a game
FALLBACK_GAME_ID = '401547652'


def current_super_bowl_season(now: Optional[datetime] = None) -> int:
    """The NFL season a Super Bowl played ``now`` belongs to (Jan/Feb -> previous year)."""
    now = now or datetime.now(timezone.utc)
    return now.year - 1 if now.month <= 2 else now.year


class EspnClient:
    """Fetches one game's state from the ESPN site API.

    Never raises on provider trouble: timeouts, HTTP errors and bad JSON
    all produce a fallback snapshot with ``live_status='fallback'``.
    ``timeout`` is one budget for the whole poll, discovery included, not a
    per-request or per-read allowance.
    """

    def __init__(self, timeout: float = 6.0, default_game_id: Optional[str] = None,
                 discovery_ttl: int = 600, base_url: str = ESPN_BASE_URL,
                 transport: Optional[httpx.BaseTransport] = None, clock=time.time):
        self.timeout = timeout
        self.default_game_id = default_game_id
        self.discovery_ttl = discovery_ttl
        self.base_url = base_url.rstrip('/')
        self.transport = transport
        self.clock = clock
        # season -> (game id, expires at)
        self._discovery_cache: Dict[int, Tuple[str, float]] = {}

    @classmethod
    def from_config(cls, config) -> 'EspnClient':
        return cls(
            timeout=float(config.get('ESPN_TIMEOUT_SEC', 6)),
            default_game_id=config.get('DEFAULT_GAME_ID'),
            discovery_ttl=int(config.get('DISCOVERY_CACHE_SEC', 600)),
        )

    def _deadline(self) -> float:
        return time.monotonic() + self.timeout

    def _fetch_json(self, path: str, params: dict, deadline: float):
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise httpx.TimeoutException(f'deadline exceeded before {path}')
        # Each wait is bounded by what is left; a body trickled in small chunks is cut off between chunks
        with httpx.Client(timeout=httpx.Timeout(remaining), transport=self.transport,
                          headers={'User-Agent': 'squares-embeds/1.0'}) as client:
            with client.stream('GET', f'{self.base_url}{path}', params=params) as response:
                response.raise_for_status()
                body = bytearray()
                for chunk in response.iter_bytes():
                    body.extend(chunk)
                    if time.monotonic() > deadline:
                        raise httpx.ReadTimeout(f'deadline exceeded reading {path}', request=response.request)
        return json.loads(bytes(body))

    def discover_game_id(self, now: Optional[datetime] = None, deadline: Optional[float] = None) -> Optional[str]:
        season = current_super_bowl_season(now)
        cached = self._discovery_cache.get(season)
        if cached and cached[1] > self.clock():
            return cached[0]

        deadline = self._deadline() if deadline is None else deadline
        for target in (season, season - 1):
            try:
                payload = self._fetch_json(SCOREBOARD_PATH, {'seasontype': 3, 'week': 5, 'dates': target}, deadline)
            except (httpx.HTTPError, ValueError) as exc:
                current_app.logger.warning(f"[espn-discovery] season={target} failed: {exc}")
                continue
            events = payload.get('events') if isinstance(payload, dict) else None
            first = events[0] if isinstance(events, list) and events and isinstance(events[0], dict) else {}
            event_id = first.get('id')
            if event_id:
                self._discovery_cache[season] = (str(event_id), self.clock() + self.discovery_ttl)
                current_app.logger.info(f"[espn-discovery] season={season} game={event_id}")
                return str(event_id)
        return None

    def resolve_game_id(self, game_id: Optional[str] = None, board_default_game_id: Optional[str] = None,
                        deadline: Optional[float] = None) -> str:
        return (
            game_id
            or board_default_game_id
            or self.default_game_id
            or self.discover_game_id(deadline=deadline)
            or FALLBACK_GAME_ID
        )

    def get_game_snapshot(self, game_id: Optional[str] = None,
                          board_default_game_id: Optional[str] = None) -> GameResult:
        deadline = self._deadline()
        resolved = self.resolve_game_id(game_id, board_default_game_id, deadline=deadline)
        try:
            payload = self._fetch_json(SUMMARY_PATH, {'event': resolved}, deadline)
            return GameResult(snapshot=normalize_espn_event(unwrap_summary(payload), resolved), live_status='ok')
        except Exception as exc:
            current_app.logger.error(f"[espn-fetch-failed] game={resolved} error={exc}")
            return GameResult(snapshot=build_fallback_snapshot(resolved), live_status='fallback')
