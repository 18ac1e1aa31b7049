import itertools

from conftest import FakeClock, RecordingGateway, quiz_content

from quizhost.models import ROOM_CODE_ALPHABET, Content, generate_room_code
from quizhost.schemas import QuizContent
from quizhost.services.registry import RoomRegistry


def _content():
    return Content.from_schema(QuizContent.model_validate(quiz_content()), 20)


def test_generated_codes_use_unambiguous_alphabet():
    for _ in range(50):
        code = generate_room_code()
        assert len(code) == 6
        assert set(code) <= set(ROOM_CODE_ALPHABET)
        assert not set(code) & set('IO01')


def test_create_retries_on_collision():
    codes = itertools.chain(['AAAAAA', 'AAAAAA', 'AAAAAA', 'BBBBBB'])
    registry = RoomRegistry(code_factory=lambda: next(codes))

    first = registry.create_room(_content(), 'h1')
    second = registry.create_room(_content(), 'h2')

    assert first.code == 'AAAAAA'
    assert second.code == 'BBBBBB'
    assert registry.get_room('AAAAAA') is first
    assert len(registry) == 2


def test_codes_unique_under_repeated_creation():
    registry = RoomRegistry(code_factory=lambda: generate_room_code(length=2))
    rooms = [registry.create_room(_content(), f'h{i}') for i in range(300)]
    assert len({r.code for r in rooms}) == 300


def test_lookup_is_case_insensitive():
    registry = RoomRegistry(code_factory=lambda: 'ABCDEF')
    room = registry.create_room(_content(), 'h')
    assert registry.get_room('abcdef') is room
    assert registry.get_room(' abcdef ') is room
    assert registry.get_room('') is None


def test_create_issues_host_token_and_lobby_state():
    registry = RoomRegistry()
    room = registry.create_room(_content(), 'host-sid')
    assert room.state == 'LOBBY'
    assert room.host_sid == 'host-sid'
    assert room.host_token
    assert room.current_question_index == 0


def test_destroy_cancels_countdown_and_notifies(engine):
    room = engine.join(engine.create(), 'Alice')
    engine.cycle.start(room, 'host-sid')
    countdown = room.countdown
    assert countdown is not None

    engine.registry.destroy_room(room.code)

    assert countdown.cancelled
    assert room.code not in engine.registry
    assert engine.gateway.last('room_closed', room.code) == {'roomCode': room.code, 'reason': 'closed'}
    assert ('close', room.code, None, None) in engine.gateway.sent
    # A stale tick after destruction goes nowhere
    engine.gateway.clear()
    countdown.tick()
    assert engine.gateway.sent == []


def test_destroy_unknown_room_is_noop():
    registry = RoomRegistry(gateway=RecordingGateway())
    assert registry.destroy_room('NOPE00') is None
    assert registry.gateway.sent == []


def test_sweep_evicts_only_idle_rooms():
    clock = FakeClock(now=0.0)
    gateway = RecordingGateway()
    registry = RoomRegistry(gateway=gateway, inactivity_timeout=100, clock=clock)
    stale = registry.create_room(_content(), 'h1')
    clock.advance(60)
    fresh = registry.create_room(_content(), 'h2')
    clock.advance(50)

    evicted = registry.sweep()

    assert evicted == [stale.code]
    assert stale.code not in registry
    assert fresh.code in registry
    assert gateway.last('room_closed', stale.code)['reason'] == 'inactive'


def test_sweep_cancels_running_countdown(engine):
    room = engine.join(engine.create(), 'Alice')
    engine.cycle.start(room, 'host-sid')
    countdown = room.countdown

    engine.clock.advance(3 * 60 * 60)
    engine.registry.sweep()

    assert countdown.cancelled
    assert room.code not in engine.registry
