import json
import os
import sys
import pytest

# Ensure the backend root (containing the `arena` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from arena import create_app, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:5173']
    LOG_LEVEL = 'WARNING'
    MAX_PLAYERS = 4
    ROOM_CODE_LENGTH = 6
    NAME_MAX_LENGTH = 16
    ROUND_LEAD_MS = 1500
    ARENA_MIN_X = 21
    ARENA_MAX_X = 459


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def rooms(flask_app):
    """The app's RoomService."""
    return flask_app.extensions['arena']['rooms']


@pytest.fixture()
def connect(flask_app):
    """Factory for Socket.IO test clients on /ws; all are disconnected on teardown."""
    opened = []

    def _connect():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws'
        )
        opened.append(test_client)
        return test_client

    yield _connect
    for test_client in opened:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


def _decode(args):
    if isinstance(args, list):
        args = args[0] if args else None
    if isinstance(args, (str, bytes)):
        return json.loads(args)
    return args


@pytest.fixture()
def drain():
    """Return every protocol message a test client has received since the last call."""
    def _drain(test_client):
        return [
            _decode(pkt['args'])
            for pkt in test_client.get_received('/ws')
            if pkt['name'] in ('message', 'json')
        ]
    return _drain


@pytest.fixture()
def send():
    def _send(test_client, type_, **fields):
        message = {'type': type_}
        message.update(fields)
        test_client.send(json.dumps(message), namespace='/ws')
    return _send
