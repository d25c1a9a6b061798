import os
import sys
import pytest

# Ensure the backend root (containing the `anonparty` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from anonparty import create_app, db, socketio
from anonparty.services.game import registry


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = '*'
    PUBLIC_BASE_URL = 'https://party.test'
    MAX_PLAYERS = 8
    MIN_PLAYERS = 3
    TOTAL_ROUNDS = 10
    TRANSACTION_RETRIES = 3
    SUBSCRIPTION_RETRY_BASE_SEC = 0
    SUBSCRIPTION_MAX_RETRIES = 2


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import anonparty.models  # noqa: F401
        db.create_all()
    # No app context is held across requests: Flask-Login caches the user on `g`
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def app_ctx(flask_app):
    with flask_app.app_context():
        yield flask_app
        db.session.remove()


@pytest.fixture()
def make_player(flask_app):
    """Return a factory for signed-in test clients, one per player."""
    def _make(name):
        player_client = flask_app.test_client()
        res = player_client.post('/auth/anonymous', json={'name': name})
        assert res.status_code == 201
        player_client.user_id = res.get_json()['user']['id']
        return player_client
    return _make


@pytest.fixture()
def lobby(app_ctx):
    """A room in PRE_START with a host and two players, built through the services."""
    room = registry.create_room('host', 'Hosty', total_rounds=2)
    code, passcode = room.code, room.passcode
    registry.join_room(code, passcode, 'p2', 'Bea')
    registry.join_room(code, passcode, 'p3', 'Cy')
    return {'code': code, 'passcode': passcode, 'players': ['host', 'p2', 'p3']}


@pytest.fixture()
def sio_factory(flask_app):
    """Connect Socket.IO test clients that share a signed-in HTTP client's session."""
    clients = []

    def _connect(http_client):
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=http_client,
            namespace='/ws'
        )
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            test_client.disconnect(namespace='/ws')
        except Exception:
            pass
