import os
import random
import sys
import pytest

# Ensure the backend root (containing the `partyround` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from partyround import create_app, socketio
from partyround.services.games import GameContext, ManualScheduler


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:5174']
    SOCKETIO_NAMESPACE = '/ws'
    VOTING_DURATION_SEC = 10
    ANSWER_DURATION_SEC = 10
    RESULTS_DURATION_SEC = 10
    TICK_SEC = 1
    DISCONNECT_GRACE_SEC = 60


@pytest.fixture()
def scheduler():
    return ManualScheduler(start=1000.0)


@pytest.fixture()
def game(scheduler):
    """A bare game core on a virtual clock, recording every published phase."""
    ctx = GameContext(scheduler, config={}, rng=random.Random(7))
    ctx.published = []
    ctx.set_listener(ctx.published.append)
    return ctx


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def app_scheduler(flask_app):
    return flask_app.extensions['partyround'].scheduler


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    """Open Socket.IO test clients on /ws; all are disconnected at teardown."""
    opened = []

    def _open(uuid=None):
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws',
            auth={'uuid': uuid} if uuid else None,
        )
        opened.append(test_client)
        return test_client

    yield _open
    for test_client in opened:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def sio_client(sio_factory):
    return sio_factory()
