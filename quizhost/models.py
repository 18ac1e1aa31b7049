import random
import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from quizhost.errors import InvalidContent

# Visually ambiguous characters (I, O, 0, 1) are left out
ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
ROOM_CODE_LENGTH = 6

LOBBY = 'LOBBY'
QUESTION = 'QUESTION'
RESULT = 'RESULT'
LEADERBOARD = 'LEADERBOARD'
FINISHED = 'FINISHED'

QUIZ = 'quiz'
POLL = 'poll'


def generate_room_code(length=ROOM_CODE_LENGTH):
    """Generate a short room code. Uniqueness is checked by the registry."""
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))


def generate_host_token():
    return secrets.token_urlsafe(24)


@dataclass(frozen=True)
class Question:
    text: str
    options: Tuple[str, ...]
    correct_answer: Optional[int]
    time_limit: int

    def to_host_dict(self, mode):
        data = {'text': self.text, 'options': list(self.options), 'timeLimit': self.time_limit}
        if mode == QUIZ:
            data['correctAnswer'] = self.correct_answer
        return data


@dataclass(frozen=True)
class Content:
    title: str
    questions: Tuple[Question, ...]

    @classmethod
    def from_schema(cls, schema, default_time_limit, mode=QUIZ):
        if mode == QUIZ:
            for number, q in enumerate(schema.questions, start=1):
                if q.correct_answer is None or not 0 <= q.correct_answer < len(q.options):
                    raise InvalidContent(f'Question {number} needs a valid correctAnswer')
        questions = tuple(
            Question(
                text=q.text,
                options=tuple(q.options),
                correct_answer=q.correct_answer,
                time_limit=q.time_limit or default_time_limit,
            )
            for q in schema.questions
        )
        return cls(title=schema.title, questions=questions)


@dataclass
class Player:
    id: str
    name: str
    sid: Optional[str] = None
    join_seq: int = 0
    avatar_index: Optional[int] = None
    score: int = 0
    streak: int = 0
    last_scored_at: Optional[float] = None
    has_submitted: bool = False
    has_reacted: bool = False
    votes: Dict[int, int] = field(default_factory=dict)

    def reset_round(self):
        self.has_submitted = False
        self.has_reacted = False

    def reset_game(self):
        self.reset_round()
        self.score = 0
        self.streak = 0
        self.last_scored_at = None
        self.votes.clear()

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'score': self.score,
            'streak': self.streak,
            'avatarIndex': self.avatar_index,
            'hasSubmitted': self.has_submitted,
            'connected': self.sid is not None,
        }


class Room:
    """One live quiz or poll session. All mutation happens under ``lock``."""

    def __init__(self, code, host_token, host_sid, content, mode=QUIZ, timer_duration=0, now=None):
        self.code = code
        self.host_token = host_token
        self.host_sid = host_sid
        self.content: Content = content
        self.mode = mode
        self.timer_duration = timer_duration
        self.state = LOBBY
        self.current_question_index = 0
        self.players: Dict[str, Player] = {}
        self.submissions_this_round = 0
        self.question_started_at: Optional[float] = None
        self.vote_counts: List[int] = []
        self.reaction_counts: Dict[str, int] = {}
        self.poll_results: List[dict] = []
        self.leaderboard: List[dict] = []
        self.countdown = None
        self.last_activity = now if now is not None else time.time()
        self.lock = threading.RLock()
        self._join_counter = 0

    @property
    def total_questions(self):
        return len(self.content.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_question_index < self.total_questions:
            return self.content.questions[self.current_question_index]
        return None

    def touch(self, now=None):
        self.last_activity = now if now is not None else time.time()

    def next_join_seq(self):
        self._join_counter += 1
        return self._join_counter

    def install_countdown(self, countdown):
        """Replace the room's countdown. The previous one is cancelled first."""
        self.cancel_countdown()
        self.countdown = countdown

    def cancel_countdown(self):
        if self.countdown is not None:
            self.countdown.cancel()
            self.countdown = None

    def name_taken(self, name, player_id):
        return any(p.name == name and p.id != player_id for p in self.players.values())

    def player_list(self):
        return [p.to_dict() for p in sorted(self.players.values(), key=lambda p: p.join_seq)]

    def summary(self):
        return {
            'roomCode': self.code,
            'title': self.content.title,
            'mode': self.mode,
            'state': self.state,
            'playerCount': len(self.players),
        }
