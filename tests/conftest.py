import os
import sys
import pytest

# Ensure the project root (containing the `quizhost` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from quizhost import create_app, socketio
from quizhost.models import Content
from quizhost.schemas import QuizContent
from quizhost.services.cycle import QuestionCycleController
from quizhost.services.registry import RoomRegistry
from quizhost.services.scheduler import CountdownScheduler
from quizhost.services.sessions import SessionResolver


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ALLOWED_ORIGINS = ['http://localhost:5173']
    SOCKETIO_NAMESPACE = '/'
    ROOM_INACTIVITY_TIMEOUT_SEC = 7200
    CLEANUP_INTERVAL_SEC = 1800
    SCORE_BASE = 600
    SCORE_BONUS = 400
    DEFAULT_TIME_LIMIT_SEC = 20
    AVATAR_POOL_SIZE = 12
    LEADERBOARD_TOP_N = 5
    MAX_NAME_LENGTH = 24
    REACTIONS = ['👍', '❤️', '😂']
    ENABLE_TIMERS_IN_TESTS = False


def quiz_content(num_questions=2, time_limit=20):
    return {
        'title': 'Test Quiz',
        'questions': [
            {
                'text': f'Question {i + 1}?',
                'options': ['A', 'B', 'C', 'D'],
                'correctAnswer': i % 4,
                'timeLimit': time_limit,
            }
            for i in range(num_questions)
        ],
    }


def poll_content(num_questions=2, timer_duration=0):
    return {
        'title': 'Test Poll',
        'mode': 'poll',
        'timerDuration': timer_duration,
        'questions': [
            {'text': f'Poll {i + 1}?', 'options': ['Red', 'Green', 'Blue']}
            for i in range(num_questions)
        ],
    }


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingGateway:
    """Stand-in for BroadcastGateway that records every delivery."""

    def __init__(self):
        self.sent = []

    def emit_to_sid(self, sid, event, payload=None):
        if sid:
            self.sent.append(('sid', sid, event, payload))

    def emit_to_host(self, room, event, payload=None):
        self.emit_to_sid(room.host_sid, event, payload)

    def emit_to_player(self, player, event, payload=None):
        self.emit_to_sid(player.sid, event, payload)

    def emit_to_room(self, room, event, payload=None):
        self.sent.append(('room', room.code, event, payload))

    def close_room(self, room):
        self.sent.append(('close', room.code, None, None))

    def events(self, name, target=None):
        return [p for kind, to, event, p in self.sent if event == name and (target is None or to == target)]

    def last(self, name, target=None):
        found = self.events(name, target)
        return found[-1] if found else None

    def clear(self):
        self.sent.clear()


class Engine:
    """Registry, resolver and controller wired together without a transport."""

    def __init__(self):
        self.clock = FakeClock()
        self.gateway = RecordingGateway()
        self.registry = RoomRegistry(gateway=self.gateway, inactivity_timeout=7200, clock=self.clock)
        self.sessions = SessionResolver(self.registry, self.gateway, clock=self.clock)
        self.cycle = QuestionCycleController(
            self.registry,
            self.gateway,
            CountdownScheduler(None, autostart=False),
            clock=self.clock,
            reactions=['👍', '❤️'],
        )

    def create(self, data=None, host_sid='host-sid'):
        data = data or quiz_content()
        schema = QuizContent.model_validate(data)
        mode = data.get('mode', 'quiz')
        content = Content.from_schema(schema, 20, mode=mode)
        room = self.registry.create_room(content, host_sid, mode=mode,
                                         timer_duration=data.get('timerDuration', 0))
        self.sessions.register_host(room, host_sid)
        return room

    def join(self, room, *names):
        for name in names:
            self.sessions.join_room(room.code, name, f'id-{name}', f'sid-{name}')
        return room


@pytest.fixture()
def engine():
    return Engine()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def services(flask_app):
    return flask_app.extensions['quizhost']


@pytest.fixture()
def connect(flask_app):
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass


@pytest.fixture()
def sio_client(connect):
    return connect()


def drain(test_client):
    """Events received since the last call, as {event name: [payloads]}."""
    events = {}
    for pkt in test_client.get_received():
        events.setdefault(pkt['name'], []).append(pkt['args'][0] if pkt['args'] else None)
    return events
