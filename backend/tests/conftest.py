import os
import sys
from collections import defaultdict

import pytest

# Ensure the backend root (containing the `poolrelay` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from poolrelay import create_app, socketio
from poolrelay.delivery import Delivery
from poolrelay.registry import RoomRegistry
from poolrelay.services.session import RoomCoordinator


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    HOST = '127.0.0.1'
    PORT = 3000
    CORS_ORIGINS = '*'
    PUSH_NAMESPACE = '/ws'
    SWEEP_INTERVAL_SEC = 60
    POLL_QUEUE_MAX = 1000
    POLL_IDLE_TIMEOUT_SEC = 0
    ENFORCE_TURN_ORDER = True


class RecordingDelivery(Delivery):
    """Collects events per player instead of sending them anywhere."""

    def __init__(self):
        self.sent = defaultdict(list)
        self.discarded = []

    def deliver(self, player_id, event):
        self.sent[player_id].append(event)

    def discard(self, player_id):
        self.discarded.append(player_id)

    def types(self, player_id):
        return [e['type'] for e in self.sent[player_id]]

    def take(self, player_id):
        return self.sent.pop(player_id, [])


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def relay(flask_app):
    return flask_app.extensions['poolrelay']


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _connect():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws'
        )
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def registry():
    return RoomRegistry()


@pytest.fixture()
def delivery():
    return RecordingDelivery()


@pytest.fixture()
def coordinator(registry):
    return RoomCoordinator(registry)
