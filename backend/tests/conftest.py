import os
import sys
import pytest

# Ensure the backend root (containing the `taprace` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from taprace import create_app, socketio
from taprace.services.game import GameSession, GameSettings
from taprace.services.game.timers import TimerHandle


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = '*'
    SOCKETIO_NAMESPACE = '/'
    DEFAULT_REQUIRED_PLAYERS = 2
    MIN_REQUIRED_PLAYERS = 2
    MAX_REQUIRED_PLAYERS = 8
    ROUND_DURATION_MS = 20000
    COUNTDOWN_SECONDS = 3
    END_TIMER_MARGIN_MS = 50
    TAP_MIN_INTERVAL_MS = 50
    TAP_INCREMENT = 0.55
    DISCONNECT_GRACE_MS = 5 * 60 * 1000
    NAME_MAX_LENGTH = 16


class FakeClock:
    def __init__(self, start=1_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class ManualScheduler:
    """Timers that only fire when the test advances the fake clock."""

    def __init__(self, clock):
        self.clock = clock
        self.scheduled = []

    def call_later(self, delay_ms, callback):
        handle = TimerHandle(delay_ms)
        self.scheduled.append((self.clock.now + delay_ms, handle, callback))
        return handle

    def pending(self):
        return [entry for entry in self.scheduled if entry[1].active]

    def advance(self, ms):
        target = self.clock.now + ms
        while True:
            due = sorted(
                (entry for entry in self.pending() if entry[0] <= target),
                key=lambda entry: entry[0],
            )
            if not due:
                break
            due_at, handle, callback = due[0]
            self.clock.now = max(self.clock.now, due_at)
            handle.fired = True
            callback()
        self.clock.now = target

    def force_fire(self, handle):
        """Run a callback even if its handle was cancelled, as if the worker
        had already woken up before the cancel landed."""
        for _, h, callback in self.scheduled:
            if h is handle:
                h.fired = True
                callback()
                return
        raise AssertionError('unknown timer handle')


class RecordingEmitter:
    def __init__(self):
        self.events = []

    def __call__(self, event, payload=None, to=None):
        self.events.append((event, payload, to))

    def names(self):
        return [e[0] for e in self.events]

    def of(self, name):
        return [e for e in self.events if e[0] == name]

    def last(self, name):
        matching = self.of(name)
        return matching[-1] if matching else None

    def clear(self):
        self.events.clear()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture()
def emitted():
    return RecordingEmitter()


@pytest.fixture()
def session(emitted, scheduler, clock):
    return GameSession(emitted, scheduler, settings=GameSettings(), clock=clock)


@pytest.fixture()
def flask_app(scheduler, clock):
    application = create_app(TestConfig, scheduler=scheduler, clock=clock)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except RuntimeError:
            pass
