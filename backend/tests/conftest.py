import os
import sys
import pytest

# Ensure the backend root (containing the `squares` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from squares import create_app, db, socketio
from squares.api import rate_limit
from squares.services.squares.types import GameResult, GameSnapshot


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ADMIN_TOKEN = 'secret'
    DEFAULT_GAME_ID = None
    ESPN_TIMEOUT_SEC = 1
    DISCOVERY_CACHE_SEC = 600
    LIVE_RATE_LIMIT_MS = 0
    SUPER_ADMIN_NAME = 'admin adminson'
    MAX_OWNERS_PER_BOARD = 6
    MAX_PICKS_PER_OWNER = 16
    CORS_ORIGINS = ['http://localhost:3000']


ADMIN_NAME = 'Admin Adminson'


def make_snapshot(period=1, home=0, away=0, status='live', clock='10:00', game_id='g1'):
    return GameSnapshot(
        game_id=game_id,
        home_team='Home',
        away_team='Away',
        home_score=home,
        away_score=away,
        period=period,
        clock=clock,
        status=status,
        kickoff_at=None,
        last_updated_at='2026-02-08T23:30:00+00:00',
    )


class FakeProvider:
    """Stands in for the ESPN client; replays queued results, repeating the last one."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def get_game_snapshot(self, game_id=None, board_default_game_id=None):
        self.calls.append((game_id, board_default_game_id))
        if len(self.results) > 1:
            result = self.results.pop(0)
        else:
            result = self.results[0]
        if isinstance(result, GameSnapshot):
            return GameResult(snapshot=result, live_status='ok')
        return result


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    rate_limit.reset()
    with application.app_context():
        # Ensure models are imported so tables are created
        import squares.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def fake_provider(flask_app):
    provider = FakeProvider(make_snapshot())
    flask_app.extensions['live_engine'].provider = provider
    return provider


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
