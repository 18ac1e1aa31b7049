"""Joins and session restore.

Players are keyed by the stable id their client generates; the Socket.IO
connection id is only a rebindable attribute of that identity. The host is
identified by the secret token issued at room creation.
"""

import logging
import math
import secrets
import threading
import time

from quizhost.errors import GameInProgress, HostConflict, InvalidName, NameTaken, RoomNotFound
from quizhost.models import FINISHED, LEADERBOARD, LOBBY, QUESTION, QUIZ, RESULT, Player
from quizhost.services import scoring

HOST = 'HOST'
PLAYER = 'PLAYER'


def client_state(room):
    return 'OVER' if room.state == FINISHED else room.state


def time_remaining(room, now):
    """Seconds left on the active question, from its recorded start time."""
    if room.state != QUESTION or room.countdown is None or room.question_started_at is None:
        return None
    elapsed = int(math.floor(now - room.question_started_at))
    return max(0, room.countdown.duration - elapsed)


class SessionResolver:
    def __init__(self, registry, gateway, clock=time.time, avatar_pool_size=12, max_name_length=24,
                 leaderboard_top_n=5, logger=None):
        self.registry = registry
        self.gateway = gateway
        self.clock = clock
        self.avatar_pool_size = avatar_pool_size
        self.max_name_length = max_name_length
        self.leaderboard_top_n = leaderboard_top_n
        self.logger = logger or logging.getLogger(__name__)
        # sid -> {(room code, role, player id)}
        self._connections = {}
        self._lock = threading.Lock()

    # ---- connection bookkeeping ----

    def _bind(self, sid, room, role, player_id=None):
        with self._lock:
            self._connections.setdefault(sid, set()).add((room.code, role, player_id))

    def register_host(self, room, sid):
        self._bind(sid, room, HOST)

    def disconnect(self, sid):
        """Forget a closed connection. Identities stay in the room for later restore.

        One connection may host or play in several rooms; all of them are
        released. Returns the rooms that were touched.
        """
        with self._lock:
            contexts = self._connections.pop(sid, set())
        rooms = []
        for code, role, player_id in sorted(contexts, key=lambda ctx: (ctx[0], ctx[1])):
            room = self.registry.get_room(code)
            if room is None:
                continue
            with room.lock:
                if role == HOST and room.host_sid == sid:
                    room.host_sid = None
                elif role == PLAYER:
                    player = room.players.get(player_id)
                    if player is not None and player.sid == sid:
                        player.sid = None
            self.logger.info(f"[disconnect] room={code} role={role}")
            rooms.append(room)
        return rooms

    # ---- joins ----

    def _pick_avatar(self, room, requested):
        if isinstance(requested, int) and 0 <= requested < self.avatar_pool_size:
            return requested
        return len(room.players) % self.avatar_pool_size if self.avatar_pool_size else None

    def join_room(self, code, name, player_id, sid, avatar_index=None):
        room = self.registry.get_room(code)
        if room is None:
            raise RoomNotFound()
        name = (name or '').strip()
        if not name:
            raise InvalidName()
        if len(name) > self.max_name_length:
            raise InvalidName(f'Name must be at most {self.max_name_length} characters')

        with room.lock:
            if room.host_sid is not None and room.host_sid == sid:
                raise HostConflict()
            player = room.players.get(player_id)
            if player is None and room.state != LOBBY:
                raise GameInProgress()
            if room.name_taken(name, player_id):
                raise NameTaken()

            if player is None:
                player = Player(
                    id=player_id,
                    name=name,
                    sid=sid,
                    join_seq=room.next_join_seq(),
                    avatar_index=self._pick_avatar(room, avatar_index),
                )
                room.players[player_id] = player
                self.logger.info(f"[join] room={room.code} player={name} count={len(room.players)}")
            else:
                # Known player: keep score and history, refresh connection and name
                player.sid = sid
                player.name = name
                if avatar_index is not None:
                    player.avatar_index = self._pick_avatar(room, avatar_index)
                self.logger.info(f"[rejoin] room={room.code} player={name}")
            room.touch(self.clock())
            self._bind(sid, room, PLAYER, player_id)
            self.gateway.emit_to_host(room, 'player_joined', room.player_list())
            return room, {
                'success': True,
                'roomCode': room.code,
                'quizTitle': room.content.title,
                'mode': room.mode,
                'playerName': player.name,
                'avatarIndex': player.avatar_index,
            }

    # ---- session restore ----

    def resolve_session(self, code, role, credential, sid):
        """Rebind ``sid`` to a host or player identity and return (room, snapshot).

        Returns None when the room or credential does not match anything.
        Game state (scores, tallies, timers) is only read.
        """
        room = self.registry.get_room(code)
        if room is None or not credential:
            return None
        with room.lock:
            now = self.clock()
            if role == HOST:
                if not secrets.compare_digest(str(credential).encode('utf-8'), room.host_token.encode('utf-8')):
                    return None
                room.host_sid = sid
                room.touch(now)
                self._bind(sid, room, HOST)
                self.logger.info(f"[restore] room={room.code} role=HOST")
                return room, self.host_snapshot(room, now)
            if role == PLAYER:
                player = room.players.get(credential)
                if player is None:
                    return None
                player.sid = sid
                room.touch(now)
                self._bind(sid, room, PLAYER, player.id)
                self.logger.info(f"[restore] room={room.code} role=PLAYER player={player.name}")
                return room, self.player_snapshot(room, player, now)
        return None

    def host_snapshot(self, room, now):
        question = room.current_question if room.state != LOBBY else None
        snapshot = {
            'role': HOST,
            'roomCode': room.code,
            'mode': room.mode,
            'title': room.content.title,
            'gameState': client_state(room),
            'players': room.player_list(),
            'question': question.to_host_dict(room.mode) if question else None,
            'questionIndex': room.current_question_index + 1 if question else 0,
            'totalQuestions': room.total_questions,
            'stats': {'answersReceived': room.submissions_this_round, 'totalPlayers': len(room.players)},
            'leaderboard': list(room.leaderboard),
            'timeRemaining': time_remaining(room, now),
        }
        if room.mode != QUIZ:
            snapshot['voteCounts'] = list(room.vote_counts)
            snapshot['voteData'] = scoring.vote_distribution(room) if question else []
            snapshot['reactionCounts'] = dict(room.reaction_counts)
            snapshot['results'] = list(room.poll_results)
        return snapshot

    def player_snapshot(self, room, player, now):
        snapshot = {
            'role': PLAYER,
            'roomCode': room.code,
            'mode': room.mode,
            'title': room.content.title,
            'gameState': client_state(room),
            'playerId': player.id,
            'playerName': player.name,
            'avatarIndex': player.avatar_index,
            'score': player.score,
            'hasSubmitted': player.has_submitted,
            'hasVoted': player.has_submitted,
            'currentQuestion': None,
        }
        question = room.current_question
        if room.state == QUESTION and question is not None:
            remaining = time_remaining(room, now)
            snapshot['currentQuestion'] = {
                'questionText': question.text,
                'options': list(question.options),
                'optionsCount': len(question.options),
                'questionIndex': room.current_question_index + 1,
                'totalQuestions': room.total_questions,
                # Actual time left, not the original limit
                'timeLimit': remaining,
                'startTime': room.question_started_at,
            }
        elif room.mode == QUIZ and room.state in (RESULT, LEADERBOARD) and question is not None:
            snapshot['correctAnswer'] = question.correct_answer
        if room.mode == QUIZ and room.state == FINISHED:
            snapshot['result'] = scoring.personal_results(room, self.leaderboard_top_n).get(player.id)
        elif room.mode != QUIZ and room.state == FINISHED:
            snapshot['results'] = list(room.poll_results)
        return snapshot
