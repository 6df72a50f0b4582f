import os
import sys
import pytest

# Ensure the backend root (containing the `mazehunt` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from mazehunt import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ENVIRONMENT = 'test'
    LOG_LEVEL = 'WARNING'
    CORS_ORIGINS = ['http://localhost:3000']
    STORAGE_RETRY_SEC = 0
    DUPLICATE_WINDOW_SEC = 60
    UNVERIFIED_SCORE_CAP = 100000
    IDENTITY_MERGE_WINDOW_HOURS = 24
    LEADERBOARD_DEFAULT_LIMIT = 10
    LEADERBOARD_MAX_LIMIT = 100


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import mazehunt.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


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


def identify(client, address='10.0.0.1', agent='agent-1', **body):
    """POST /api/user/identify as a client at the given address/user agent."""
    return client.post(
        '/api/user/identify',
        json=body,
        headers={'User-Agent': agent},
        environ_base={'REMOTE_ADDR': address},
    )


def submit(client, device_id, score, level=1, address='10.0.0.1', agent='agent-1', **extra):
    body = {'deviceId': device_id, 'score': score, 'level': level}
    body.update(extra)
    return client.post(
        '/api/leaderboard',
        json=body,
        headers={'User-Agent': agent},
        environ_base={'REMOTE_ADDR': address},
    )
