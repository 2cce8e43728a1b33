import os
import sys
import pytest

# Ensure the backend root (containing the `arena` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from arena import create_app, db, socketio
from arena.models import Participant
from arena.services.live.broadcast import LIVE_NAMESPACE
from arena.services.live.coordinator import LiveCoordinator
from arena.services.live.ledger import ParticipantLedger


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    SHAPE_QUEST_DURATION_SEC = 30
    ELIMINATE_SILENT_PLAYERS = True
    STARTING_COINS = 1000
    NUMBER_RANGE_MIN = 1
    NUMBER_RANGE_MAX = 456


class RecordingBroadcaster:
    """Collects emitted events instead of sending them over Socket.IO."""

    def __init__(self):
        self.events = []
        self.disconnected = []

    def emit_all(self, event, payload):
        self.events.append((event, payload, None))

    def emit_to(self, connection_id, event, payload):
        self.events.append((event, payload, connection_id))

    def force_disconnect(self, connection_id):
        self.events.append(('forceDisconnect', {}, connection_id))
        self.disconnected.append(connection_id)

    def named(self, event):
        return [payload for name, payload, _ in self.events if name == event]


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import arena.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_participant(flask_app):
    counter = {'number': 0}

    def _make(identity, password='password', name=None, role='participant',
              is_girl=False, coins=1000, is_eliminated=False, number=None):
        if role == 'participant' and number is None:
            counter['number'] += 1
            number = counter['number']
        participant = Participant(
            identity=identity,
            name=name or identity.title(),
            role=role,
            is_girl=is_girl,
            coins=coins,
            is_eliminated=is_eliminated,
            assigned_number=number if role == 'participant' else None,
        )
        participant.set_password(password)
        db.session.add(participant)
        db.session.commit()
        return participant

    return _make


@pytest.fixture()
def recorder():
    return RecordingBroadcaster()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def coordinator(flask_app, recorder, clock):
    """An isolated coordinator that records broadcasts instead of emitting them."""
    return LiveCoordinator(ParticipantLedger(db), recorder, quest_duration_sec=30, clock=clock)


def login(client, identity, password='password'):
    res = client.post('/api/login', json={'identity': identity, 'password': password})
    assert res.status_code == 200, res.get_json()
    return res.get_json()['token']


def received(sio_client, namespace=LIVE_NAMESPACE):
    """Drain queued events, including ones that arrived before a server-side disconnect."""
    events = [pkt for pkt in sio_client.queue if pkt['namespace'] == namespace]
    sio_client.queue = [pkt for pkt in sio_client.queue if pkt['namespace'] != namespace]
    return events


def names(events):
    return [e['name'] for e in events]


def payloads(events, name):
    return [e['args'][0] for e in events if e['name'] == name]


@pytest.fixture()
def live_client(flask_app):
    """Factory for /ws test clients, optionally authenticated with a session token."""
    clients = []

    def _connect(identity=None, token=None):
        sio = socketio.test_client(flask_app, namespace=LIVE_NAMESPACE)
        clients.append(sio)
        if identity is not None:
            sio.emit('authenticate', {'identity': identity, 'token': token}, namespace=LIVE_NAMESPACE)
        return sio

    yield _connect
    for sio in clients:
        if sio.is_connected(LIVE_NAMESPACE):
            sio.disconnect(namespace=LIVE_NAMESPACE)
