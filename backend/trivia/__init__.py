from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('ALLOWED_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from trivia.auth import admin_auth
    admin_auth.init_app(flask_app)

    from trivia.errors import register_error_handlers
    register_error_handlers(flask_app)

    # Live leaderboard registry and the session manager that publishes into it
    from trivia.services.quiz import LeaderboardBroadcaster, SessionManager
    broadcaster = LeaderboardBroadcaster()
    flask_app.extensions['leaderboard_broadcaster'] = broadcaster
    flask_app.extensions['session_manager'] = SessionManager(
        broadcaster=broadcaster,
        grace_ms=int(flask_app.config.get('SUBMIT_GRACE_MS', 0)),
        accept_late=bool(flask_app.config.get('ACCEPT_LATE_SUBMISSIONS', False)),
        leaderboard_limit=int(flask_app.config.get('LEADERBOARD_LIMIT', 20)),
    )

    from trivia.main import main
    flask_app.register_blueprint(main)

    from trivia.api.quiz import quiz
    flask_app.register_blueprint(quiz, url_prefix='/quiz')

    from trivia.api.leaderboard import leaderboard
    flask_app.register_blueprint(leaderboard, url_prefix='/leaderboard')

    from trivia.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from trivia.seed import seed_questions
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            count = seed_questions()
            print(f'Database has been reset and seeded with {count} questions!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
