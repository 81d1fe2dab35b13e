"""Turn loosely-typed ESPN event payloads into GameSnapshot values.

Nothing in the payload is assumed to exist: every field has a named
default, and every container is type-checked before it is walked.
"""
from datetime import datetime, timezone

from squares.services.squares.types import GameSnapshot

DEFAULT_HOME_TEAM = 'Home'
DEFAULT_AWAY_TEAM = 'Away'
DEFAULT_PERIOD = 1
PERIOD_START_CLOCK = '15:00'

LIVE_STATES = frozenset({'in', 'in_progress', 'halftime', 'end_period', 'delayed', 'suspended'})


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def _first(value) -> dict:
    if isinstance(value, list) and value:
        return _dict(value[0])
    return {}


def parse_score(value) -> int:
    if value in (None, '', '-') or isinstance(value, bool):
        return 0
    try:
        return int(str(value).strip(), 10)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0


def _period(status: dict) -> int:
    value = status.get('period')
    if isinstance(value, bool):
        return DEFAULT_PERIOD
    if isinstance(value, (int, float)):
        return int(value)
    return DEFAULT_PERIOD


def _clock(status: dict) -> str:
    value = status.get('displayClock')
    return value if isinstance(value, str) else PERIOD_START_CLOCK


def _competitor(competition: dict, side: str) -> dict:
    competitors = competition.get('competitors')
    if not isinstance(competitors, list):
        return {}
    for team in competitors:
        if isinstance(team, dict) and team.get('homeAway') == side:
            return team
    return {}


def _team_name(competitor: dict, default: str) -> str:
    team = _dict(competitor.get('team'))
    for key in ('shortDisplayName', 'displayName', 'abbreviation'):
        name = team.get(key)
        if isinstance(name, str) and name:
            return name
    return default


def resolve_status(event: dict, competition: dict) -> str:
    comp_type = _dict(_dict(competition.get('status')).get('type'))
    event_type = _dict(_dict(event.get('status')).get('type'))

    state = comp_type.get('state')
    if not isinstance(state, str):
        state = event_type.get('state')
    state = state.lower() if isinstance(state, str) else 'pre'

    completed = comp_type.get('completed')
    if completed is None:
        completed = event_type.get('completed', False)

    if completed is True or state == 'post':
        return 'final'
    if state in LIVE_STATES:
        return 'live'

    # Providers sometimes mislabel state around transitions; trust the scoreboard
    status = _dict(competition.get('status'))
    period = _period(status)
    clock = _clock(status)
    home_score = parse_score(_competitor(competition, 'home').get('score'))
    away_score = parse_score(_competitor(competition, 'away').get('score'))
    if period > 1 or home_score > 0 or away_score > 0 or (period == 1 and clock != PERIOD_START_CLOCK):
        return 'live'
    return 'pre'


def normalize_espn_event(raw, fallback_game_id: str) -> GameSnapshot:
    event = _dict(raw)
    competition = _first(event.get('competitions'))
    status = _dict(competition.get('status'))
    home = _competitor(competition, 'home')
    away = _competitor(competition, 'away')

    event_id = event.get('id')
    event_date = event.get('date') if isinstance(event.get('date'), str) else None

    return GameSnapshot(
        game_id=str(event_id) if event_id not in (None, '') else fallback_game_id,
        home_team=_team_name(home, DEFAULT_HOME_TEAM),
        away_team=_team_name(away, DEFAULT_AWAY_TEAM),
        home_score=parse_score(home.get('score')),
        away_score=parse_score(away.get('score')),
        period=_period(status),
        clock=_clock(status),
        status=resolve_status(event, competition),
        kickoff_at=event_date,
        last_updated_at=event_date or _now_iso(),
    )


def unwrap_summary(payload) -> dict:
    """The summary endpoint nests the event under ``header``; scoreboard events don't."""
    payload = _dict(payload)
    header = _dict(payload.get('header'))
    if header.get('competitions'):
        return {
            'id': header.get('id'),
            'competitions': header.get('competitions'),
            'status': payload.get('status'),
        }
    return payload


def build_fallback_snapshot(game_id: str) -> GameSnapshot:
    return GameSnapshot(
        game_id=game_id,
        home_team=DEFAULT_HOME_TEAM,
        away_team=DEFAULT_AWAY_TEAM,
        home_score=0,
        away_score=0,
        period=DEFAULT_PERIOD,
        clock=PERIOD_START_CLOCK,
        status='fallback',
        kickoff_at=None,
        last_updated_at=_now_iso(),
    )
