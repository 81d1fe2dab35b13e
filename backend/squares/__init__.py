from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from squares.main import main
    flask_app.register_blueprint(main)

    from squares.api.boards import boards
    flask_app.register_blueprint(boards, url_prefix='/api/boards')

    # One reconciliation engine per app: owns the last-seen snapshot per board
    from squares.services.espn.client import EspnClient
    from squares.services.squares import repository
    from squares.services.squares.live import LiveBoardEngine
    flask_app.extensions['live_engine'] = LiveBoardEngine(
        repository=repository,
        provider=EspnClient.from_config(flask_app.config),
    )

    from squares.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the default board with demo owners."""
        from squares.services.squares.picks import run_guest_admin_action
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            run_guest_admin_action('default', 'seed_demo')
            print('Database has been reset and the default board seeded!')

    @click.command('seed-demo')
    @click.argument('board_id', default='default')
    def seed_demo_command(board_id):
        """Replaces a board's owners and picks with the demo roster."""
        from squares.services.squares.picks import run_guest_admin_action
        with flask_app.app_context():
            run_guest_admin_action(board_id, 'seed_demo')
            print(f'Board {board_id} seeded with demo owners.')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(seed_demo_command)

    return flask_app
