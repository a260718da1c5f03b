import os
import sys
import tempfile
from types import SimpleNamespace

import pytest

# Ensure the server root (containing the `heart_robot` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
SERVER_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if SERVER_ROOT not in sys.path:
    sys.path.insert(0, SERVER_ROOT)

# Keep test logs out of the working tree
os.environ.setdefault('LOG_DIR', tempfile.mkdtemp(prefix='heart_robot_logs_'))

from bson.objectid import ObjectId  # noqa: E402

from heart_robot import create_app  # noqa: E402
from heart_robot.config import TestingConfig  # noqa: E402
from heart_robot.services.auth_service import initialize_auth_service  # noqa: E402
from heart_robot.services.clock import ScheduledCall  # noqa: E402
from heart_robot.services.mission_service import MissionService, initialize_mission_service  # noqa: E402
from heart_robot.services.puzzle_service import PuzzleService, PuzzleUnavailableError  # noqa: E402
from heart_robot.services.score_service import ScoreService, initialize_score_service  # noqa: E402
from heart_robot.services.storage import initialize_local_storage  # noqa: E402


# ----------------------------------------------------------------------
# In-memory stand-ins for the MongoDB collections
# ----------------------------------------------------------------------

def _matches(doc, query):
    for key, expected in query.items():
        value = doc.get(key)
        if isinstance(expected, dict) and any(k.startswith('$') for k in expected):
            for op, operand in expected.items():
                if value is None:
                    return False
                if op == '$gt' and not value > operand:
                    return False
                if op == '$lt' and not value < operand:
                    return False
        elif value != expected:
            return False
    return True


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs

    def sort(self, key, direction=1):
        self.docs = sorted(self.docs, key=lambda d: d.get(key) or 0, reverse=direction < 0)
        return self

    def limit(self, n):
        if n:
            self.docs = self.docs[:n]
        return self

    def __iter__(self):
        return iter([dict(d) for d in self.docs])


class FakeCollection:
    def __init__(self):
        self.docs = []
        self.fail_inserts = False

    def create_index(self, *args, **kwargs):
        return None

    def insert_one(self, doc):
        if self.fail_inserts:
            from pymongo.errors import PyMongoError
            raise PyMongoError("insert failed")
        stored = dict(doc)
        stored.setdefault('_id', ObjectId())
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored['_id'])

    def find_one(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                return dict(doc)
        return None

    def find(self, query=None):
        return FakeCursor([d for d in self.docs if _matches(d, query or {})])

    def update_one(self, query, update):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update.get('$set', {}))
                return SimpleNamespace(modified_count=1)
        return SimpleNamespace(modified_count=0)

    def delete_one(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                self.docs.remove(doc)
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    def __init__(self):
        self._collections = {}

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)
        return self._collections.setdefault(name, FakeCollection())

    def __getitem__(self, name):
        return getattr(self, name)


# ----------------------------------------------------------------------
# Time and puzzle provider stand-ins
# ----------------------------------------------------------------------

class ManualScheduler:
    """Scheduler whose time only moves when a test calls advance()."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = 0

    def schedule(self, delay, callback, *args):
        call = ScheduledCall()
        self._seq += 1
        self._queue.append((self.now + delay, self._seq, call, callback, args))
        return call

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [entry for entry in self._queue if entry[0] <= target + 1e-9]
            if not due:
                break
            entry = min(due, key=lambda e: (e[0], e[1]))
            self._queue.remove(entry)
            self.now = max(self.now, entry[0])
            _, _, call, callback, args = entry
            if not call.cancelled:
                callback(*args)
        self.now = target

    def pending(self):
        return [entry for entry in self._queue if not entry[2].cancelled]


class FakePuzzleClient:
    """Serves queued payloads; an Exception in the queue is raised instead."""

    def __init__(self, solution=3, carrots=4):
        self.solution = solution
        self.carrots = carrots
        self.queue = []
        self.calls = 0
        self.fail_always = False

    def fetch(self):
        self.calls += 1
        if self.fail_always:
            raise PuzzleUnavailableError("provider down")
        if self.queue:
            item = self.queue.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return {
            'question': f'https://puzzles.test/heart-{self.calls}.png',
            'solution': self.solution,
            'carrots': self.carrots
        }


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------

@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def stores():
    return initialize_local_storage()


@pytest.fixture()
def puzzle_client():
    return FakePuzzleClient()


@pytest.fixture()
def puzzle_service(puzzle_client, stores):
    return PuzzleService(puzzle_client, stores['secrets'])


@pytest.fixture()
def score_collection():
    return FakeCollection()


@pytest.fixture()
def score_service(score_collection):
    return ScoreService(score_collection)


@pytest.fixture()
def events():
    return []


@pytest.fixture()
def mission_service(puzzle_service, stores, scheduler, score_service, events):
    def notifier(mission_id, event, payload):
        events.append((mission_id, event, payload))

    return MissionService(
        puzzle_service, stores['handoff'], scheduler,
        score_service=score_service, notifier=notifier, settle_delay=1.1
    )


@pytest.fixture()
def owner():
    return {'id': 'player-1', 'name': 'Ada', 'email': 'ada@example.com', 'role': 'player'}


@pytest.fixture()
def flask_app(puzzle_service, stores, scheduler, score_collection, events):
    application, _ = create_app(TestingConfig)
    with application.app_context():
        auth_service = initialize_auth_service(FakeDatabase(), TestingConfig.JWT_SECRET)
        score_service = initialize_score_service(score_collection)
        mission_service = initialize_mission_service(
            puzzle_service, stores['handoff'], scheduler,
            score_service=score_service,
            notifier=lambda mission_id, event, payload: events.append((mission_id, event, payload)),
            settle_delay=TestingConfig.SETTLE_DELAY_SECONDS
        )
        auth_service.subscribe(mission_service.handle_auth_change)
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = flask_app.socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
    yield test_client
    if test_client.is_connected():
        test_client.disconnect()


def register_and_login(client, name='Ada', email='ada@example.com', password='secret123'):
    client.post('/api/auth/register', json={'name': name, 'email': email, 'password': password})
    res = client.post('/api/auth/login', json={'email': email, 'password': password})
    body = res.get_json()
    return body['token'], body['user']


@pytest.fixture()
def auth(client):
    token, user = register_and_login(client)
    return SimpleNamespace(token=token, user=user, headers={'Authorization': f'Bearer {token}'})
