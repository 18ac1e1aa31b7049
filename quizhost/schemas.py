"""Inbound event payloads, validated before they reach the game services.

One model per client event. Field aliases follow the camelCase names the
browser client sends.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class QuestionContent(_Payload):
    text: str = Field(min_length=1)
    options: List[str] = Field(min_length=2)
    correct_answer: Optional[int] = Field(default=None, alias='correctAnswer')
    time_limit: Optional[int] = Field(default=None, alias='timeLimit', gt=0)


class QuizContent(_Payload):
    title: str = ''
    questions: List[QuestionContent] = Field(min_length=1)


class CreateRoom(QuizContent):
    mode: Literal['quiz', 'poll'] = 'quiz'
    timer_duration: int = Field(default=0, alias='timerDuration', ge=0)


class RoomCommand(_Payload):
    """Host commands: the client sends either the bare code or ``{roomCode}``."""

    room_code: str = Field(alias='roomCode', min_length=1)

    @field_validator('room_code')
    @classmethod
    def _upper(cls, value):
        return value.strip().upper()

    @classmethod
    def parse(cls, data):
        if isinstance(data, str):
            data = {'roomCode': data}
        return cls.model_validate(data or {})


class JoinRoom(RoomCommand):
    player_name: str = Field(alias='playerName')
    player_id: str = Field(alias='playerId', min_length=1)
    avatar_index: Optional[int] = Field(default=None, alias='avatarIndex')


class CheckSession(RoomCommand):
    role: Literal['HOST', 'PLAYER'] = Field(alias='type')
    credential: str = Field(alias='id', min_length=1)


class SubmitAnswer(RoomCommand):
    answer_index: int = Field(alias='answerIndex')
    time_remaining: float = Field(default=0, alias='timeRemaining')
    player_id: str = Field(alias='playerId', min_length=1)


class SubmitVote(RoomCommand):
    option_index: int = Field(alias='optionIndex')
    player_id: str = Field(alias='playerId', min_length=1)


class SubmitReaction(RoomCommand):
    reaction: str = Field(min_length=1)
    player_id: str = Field(alias='playerId', min_length=1)
