import os
import sys
import pytest

# Ensure the backend root (containing the `trivia` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from trivia import create_app, db, socketio

ADMIN_TOKEN = 'test-admin-token'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    DEFAULT_QUESTION_COUNT = 3
    DEFAULT_DURATION_MS = 60000
    SUBMIT_GRACE_MS = 5000
    ACCEPT_LATE_SUBMISSIONS = False
    ADMIN_TOKEN = ADMIN_TOKEN
    BCRYPT_LOG_ROUNDS = 4
    ALLOWED_ORIGINS = ['http://localhost:3000']
    MAX_CONTENT_LENGTH = 64 * 1024
    QUIZ_RATE_LIMIT_PER_MIN = 0
    LEADERBOARD_LIMIT = 20
    LEADERBOARD_MAX_LIMIT = 100
    STREAM_KEEPALIVE_SEC = 1


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import trivia.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def file_app(tmp_path):
    """App backed by an on-disk SQLite file so threads get real connections."""

    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'quiz.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {'connect_args': {'timeout': 30, 'check_same_thread': False}}

    application = create_app(FileConfig)
    with application.app_context():
        import trivia.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


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


@pytest.fixture()
def admin_headers():
    return {'X-Admin-Token': ADMIN_TOKEN}


@pytest.fixture()
def make_questions():
    """Create admin questions; option i of question n is 'Q{n} option {i}'."""
    from trivia.repositories import QuestionBank

    def _make(count, correct_index=0, start=1):
        bank = QuestionBank()
        return [
            bank.create(
                f'Question {n}?',
                [f'Q{n} option {i}' for i in range(4)],
                correct_index,
                category='General',
                difficulty='easy',
            )
            for n in range(start, start + count)
        ]

    return _make


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def make_manager(flask_app, clock):
    from trivia.services.quiz import LeaderboardBroadcaster, SessionManager

    def _make(**kwargs):
        kwargs.setdefault('clock', clock)
        kwargs.setdefault('grace_ms', flask_app.config['SUBMIT_GRACE_MS'])
        kwargs.setdefault('broadcaster', LeaderboardBroadcaster())
        return SessionManager(**kwargs)

    return _make
