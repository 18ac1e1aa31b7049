from flask import current_app, request
from flask_socketio import emit, join_room
from pydantic import ValidationError

from quizhost.errors import CommandRejected, InvalidPayload
from quizhost.models import Content
from quizhost.schemas import (
    CheckSession,
    CreateRoom,
    JoinRoom,
    RoomCommand,
    SubmitAnswer,
    SubmitReaction,
    SubmitVote,
)


def _services():
    return current_app.extensions['quizhost']


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _parse(schema, data, event):
    try:
        return schema.parse(data)
    except ValidationError as exc:
        current_app.logger.warning(f"[bad-payload] event={event} errors={exc.error_count()}")
        return None


def _room_for(schema, data, event):
    payload = _parse(schema, data, event)
    if payload is None:
        return None, None
    return _services().registry.get_room(payload.room_code), payload


def handle_connect():
    current_app.logger.debug(f"[connect] sid={_get_sid()}")


def handle_disconnect(reason=None):
    _services().sessions.disconnect(_get_sid())


# ---- host events ----

def handle_create_room(data):
    try:
        payload = CreateRoom.model_validate(data or {})
    except ValidationError as exc:
        current_app.logger.warning(f"[bad-payload] event=create_room errors={exc.error_count()}")
        return InvalidPayload('Quiz content is invalid').to_ack()
    try:
        content = Content.from_schema(
            payload, current_app.config.get('DEFAULT_TIME_LIMIT_SEC', 20), mode=payload.mode
        )
    except CommandRejected as exc:
        return exc.to_ack()

    services = _services()
    sid = _get_sid()
    timer_duration = payload.timer_duration if payload.mode == 'poll' else 0
    room = services.registry.create_room(content, sid, mode=payload.mode, timer_duration=timer_duration)
    services.sessions.register_host(room, sid)
    join_room(room.code)
    return {'roomCode': room.code, 'hostToken': room.host_token, 'mode': room.mode}


def _host_command(event, action):
    def handler(data=None):
        room, _ = _room_for(RoomCommand, data, event)
        if room is None:
            return
        action(_services().cycle, room, _get_sid())
    handler.__name__ = f"handle_{event}"
    return handler


handle_start_game = _host_command('start_game', lambda cycle, room, sid: cycle.start(room, sid))
handle_next_question = _host_command('next_question', lambda cycle, room, sid: cycle.advance(room, sid))
handle_end_question = _host_command('end_question', lambda cycle, room, sid: cycle.end_question(room, sid))
handle_show_leaderboard = _host_command('show_leaderboard', lambda cycle, room, sid: cycle.show_leaderboard(room, sid))
handle_reset_game = _host_command('reset_game', lambda cycle, room, sid: cycle.reset(room, sid))
handle_close_room = _host_command('close_room', lambda cycle, room, sid: cycle.close(room, sid))


# ---- player events ----

def handle_join_room(data):
    payload = _parse(JoinRoom, data, 'join_room')
    if payload is None:
        return InvalidPayload().to_ack()
    try:
        room, ack = _services().sessions.join_room(
            payload.room_code,
            payload.player_name,
            payload.player_id,
            _get_sid(),
            avatar_index=payload.avatar_index,
        )
    except CommandRejected as exc:
        return exc.to_ack()
    join_room(room.code)
    return ack


def handle_check_session(data):
    payload = _parse(CheckSession, data, 'check_session')
    result = None
    if payload is not None:
        result = _services().sessions.resolve_session(
            payload.room_code, payload.role, payload.credential, _get_sid()
        )
    if result is None:
        emit('session_invalid')
        return
    room, snapshot = result
    join_room(room.code)
    emit('session_restored', snapshot)


def handle_submit_answer(data):
    room, payload = _room_for(SubmitAnswer, data, 'submit_answer')
    if room is None:
        return
    _services().cycle.submit_answer(
        room, payload.player_id, payload.answer_index, payload.time_remaining, sid=_get_sid()
    )


def handle_submit_vote(data):
    room, payload = _room_for(SubmitVote, data, 'submit_vote')
    if room is None:
        return
    _services().cycle.submit_vote(room, payload.player_id, payload.option_index, sid=_get_sid())


def handle_submit_reaction(data):
    room, payload = _room_for(SubmitReaction, data, 'submit_reaction')
    if room is None:
        return
    _services().cycle.submit_reaction(room, payload.player_id, payload.reaction, sid=_get_sid())


def register_socketio_handlers(namespace='/') -> None:
    """Register Socket.IO event handlers on the configured namespace."""
    from quizhost import socketio

    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'create_room': handle_create_room,
        'join_room': handle_join_room,
        'check_session': handle_check_session,
        'start_game': handle_start_game,
        'next_question': handle_next_question,
        'end_question': handle_end_question,
        'show_leaderboard': handle_show_leaderboard,
        'reset_game': handle_reset_game,
        'close_room': handle_close_room,
        'submit_answer': handle_submit_answer,
        'submit_vote': handle_submit_vote,
        'submit_reaction': handle_submit_reaction,
    }
    for event, handler in handlers.items():
        socketio.on_event(event, handler, namespace=namespace)
