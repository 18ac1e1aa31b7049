"""Question cycle: LOBBY -> QUESTION -> RESULT/LEADERBOARD -> ... -> FINISHED.

Host commands arrive with the caller's connection id and are ignored unless
it is the room's current host connection. Countdown callbacks and client
events both run under ``room.lock``; a countdown callback that is no longer
the room's installed countdown does nothing.
"""

import logging
import time

from quizhost.models import FINISHED, LEADERBOARD, LOBBY, POLL, QUESTION, QUIZ, RESULT
from quizhost.services import scoring
from quizhost.services.scheduler import Countdown


class QuestionCycleController:
    def __init__(self, registry, gateway, scheduler, clock=time.time, score_base=600, score_bonus=400,
                 leaderboard_top_n=5, reactions=(), logger=None):
        self.registry = registry
        self.gateway = gateway
        self.scheduler = scheduler
        self.clock = clock
        self.score_base = score_base
        self.score_bonus = score_bonus
        self.leaderboard_top_n = leaderboard_top_n
        self.reactions = tuple(reactions)
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def is_host(room, sid):
        return sid is not None and room.host_sid == sid

    # ---- host commands ----

    def start(self, room, sid):
        with room.lock:
            if not self.is_host(room, sid) or room.state != LOBBY:
                return False
            room.touch(self.clock())
            room.current_question_index = 0
            room.poll_results = []
            room.leaderboard = []
            self.logger.info(f"[start] room={room.code} mode={room.mode} questions={room.total_questions}")
            self._begin_question(room)
            return True

    def advance(self, room, sid):
        with room.lock:
            if not self.is_host(room, sid) or room.state in (LOBBY, FINISHED):
                return False
            room.touch(self.clock())
            if room.state == QUESTION:
                self._end_question(room, auto_advance=False)
            room.cancel_countdown()
            self._next_question(room)
            return True

    def end_question(self, room, sid):
        with room.lock:
            if not self.is_host(room, sid):
                return False
            room.touch(self.clock())
            return self._end_question(room)

    def show_leaderboard(self, room, sid):
        with room.lock:
            if not self.is_host(room, sid) or room.mode != QUIZ or room.state != RESULT:
                return False
            room.touch(self.clock())
            room.state = LEADERBOARD
            room.leaderboard = scoring.standings(room)[:self.leaderboard_top_n]
            board = scoring.standings(room, include_ids=False)[:self.leaderboard_top_n]
            self.gateway.emit_to_room(room, 'show_leaderboard', {
                'leaderboard': board,
                'questionIndex': room.current_question_index + 1,
                'totalQuestions': room.total_questions,
            })
            return True

    def reset(self, room, sid):
        with room.lock:
            if not self.is_host(room, sid):
                return False
            room.cancel_countdown()
            room.state = LOBBY
            room.current_question_index = 0
            room.submissions_this_round = 0
            room.question_started_at = None
            room.vote_counts = []
            room.reaction_counts = {}
            room.poll_results = []
            room.leaderboard = []
            scoring.reset_scores(room)
            room.touch(self.clock())
            self.gateway.emit_to_room(room, 'game_reset', {'title': room.content.title})
            self.logger.info(f"[reset] room={room.code}")
            return True

    def close(self, room, sid):
        with room.lock:
            if not self.is_host(room, sid):
                return False
        self.registry.destroy_room(room.code, reason='closed')
        return True

    # ---- player submissions ----

    def submit_answer(self, room, player_id, answer_index, time_remaining, sid=None):
        """Quiz answer. Returns the points awarded, or None when the submission is dropped."""
        with room.lock:
            if room.mode != QUIZ or room.state != QUESTION:
                return None
            player = room.players.get(player_id)
            if player is None:
                return None
            now = self.clock()
            points = scoring.record_answer(room, player, answer_index, time_remaining, now,
                                           base=self.score_base, bonus=self.score_bonus)
            if points is None:
                return None
            room.touch(now)
            self.gateway.emit_to_sid(sid or player.sid, 'answer_received', {'submitted': True})
            self.gateway.emit_to_host(room, 'live_stats', self._stats(room))
            if scoring.all_submitted(room):
                self._end_question(room)
            return points

    def submit_vote(self, room, player_id, option_index, sid=None):
        """Poll vote. Returns the same-option count of others, or None when dropped."""
        with room.lock:
            if room.mode != POLL or room.state != QUESTION:
                return None
            player = room.players.get(player_id)
            if player is None:
                return None
            same = scoring.record_vote(room, player, option_index)
            if same is None:
                return None
            room.touch(self.clock())
            self.gateway.emit_to_sid(sid or player.sid, 'vote_received', {
                'submitted': True,
                'optionIndex': option_index,
                'sameOptionCount': same,
            })
            live = self._stats(room)
            live['voteData'] = scoring.vote_distribution(room)
            self.gateway.emit_to_host(room, 'live_votes', live)
            if scoring.all_submitted(room):
                self._end_question(room)
            return same

    def submit_reaction(self, room, player_id, reaction, sid=None):
        with room.lock:
            if room.mode != POLL or room.state not in (QUESTION, RESULT):
                return False
            player = room.players.get(player_id)
            if player is None or not player.has_submitted or player.has_reacted:
                return False
            if reaction not in self.reactions:
                return False
            player.has_reacted = True
            room.reaction_counts[reaction] = room.reaction_counts.get(reaction, 0) + 1
            room.touch(self.clock())
            self.gateway.emit_to_host(room, 'reaction_update', {
                'reaction': reaction,
                'playerName': player.name,
                'counts': dict(room.reaction_counts),
            })
            self.gateway.emit_to_sid(sid or player.sid, 'reaction_ack', {'reaction': reaction})
            return True

    # ---- transitions (caller holds room.lock) ----

    def _stats(self, room):
        return {'answersReceived': room.submissions_this_round, 'totalPlayers': len(room.players)}

    def _question_duration(self, room, question):
        if room.mode == QUIZ:
            return question.time_limit
        return room.timer_duration or None

    def _begin_question(self, room):
        question = room.current_question
        room.state = QUESTION
        room.submissions_this_round = 0
        room.vote_counts = [0] * len(question.options)
        room.reaction_counts = {}
        for player in room.players.values():
            player.reset_round()
        room.question_started_at = self.clock()
        duration = self._question_duration(room, question)
        number = room.current_question_index + 1

        host_payload = {
            'question': question.text,
            'options': list(question.options),
            'timeLimit': duration,
            'questionIndex': number,
            'totalQuestions': room.total_questions,
        }
        if room.mode == QUIZ:
            host_payload['correctAnswer'] = question.correct_answer
        else:
            host_payload['voteData'] = scoring.vote_distribution(room)
        self.gateway.emit_to_host(room, 'new_question_host', host_payload)
        self.gateway.emit_to_room(room, 'new_question_player', {
            'questionText': question.text,
            'options': list(question.options),
            'optionsCount': len(question.options),
            'timeLimit': duration,
            'questionIndex': number,
            'totalQuestions': room.total_questions,
            'startTime': room.question_started_at,
        })

        if duration:
            countdown = Countdown(duration, self._make_tick(room), self._make_expire(room, room.current_question_index))
            room.install_countdown(countdown)
            self.logger.info(f"[timer-set] room={room.code} question={number} duration={duration}s countdown={countdown.id}")
            self.scheduler.start(countdown)
        else:
            room.cancel_countdown()

    def _make_tick(self, room):
        def _on_tick(countdown, remaining):
            with room.lock:
                if room.countdown is not countdown:
                    return
                room.touch(self.clock())
                self.gateway.emit_to_room(room, 'timer_tick', {
                    'timeRemaining': remaining,
                    'questionIndex': room.current_question_index + 1,
                })
        return _on_tick

    def _make_expire(self, room, question_index):
        def _on_expire(countdown):
            with room.lock:
                if (room.countdown is not countdown or room.state != QUESTION
                        or room.current_question_index != question_index):
                    self.logger.info(f"[timer-abort] room={room.code} countdown={countdown.id} stale")
                    return
                self.logger.info(f"[timer-fire] room={room.code} question={question_index + 1}")
                self._end_question(room)
        return _on_expire

    def _end_question(self, room, auto_advance=True):
        """End the active question. A second trigger for the same question is a no-op."""
        if room.state != QUESTION:
            return False
        room.cancel_countdown()
        room.state = RESULT
        question = room.current_question
        number = room.current_question_index + 1
        self.logger.info(
            f"[question-end] room={room.code} question={number} submissions={room.submissions_this_round}/{len(room.players)}"
        )
        if room.mode == QUIZ:
            self.gateway.emit_to_room(room, 'question_ended', {
                'correctAnswer': question.correct_answer,
                'questionIndex': number,
                'answersReceived': room.submissions_this_round,
            })
            return True

        distribution = scoring.vote_distribution(room)
        room.poll_results.append({
            'question': question.text,
            'questionIndex': number,
            'voteData': distribution,
            'totalVotes': room.submissions_this_round,
        })
        self.gateway.emit_to_room(room, 'question_ended', {
            'voteData': distribution,
            'questionIndex': number,
            'answersReceived': room.submissions_this_round,
        })
        if auto_advance and room.timer_duration > 0:
            self._next_question(room)
        return True

    def _next_question(self, room):
        room.current_question_index += 1
        if room.current_question_index < room.total_questions:
            self._begin_question(room)
        else:
            self._finish(room)

    def _finish(self, room):
        room.cancel_countdown()
        room.state = FINISHED
        self.logger.info(f"[finish] room={room.code} mode={room.mode} players={len(room.players)}")
        if room.mode == POLL:
            self.gateway.emit_to_room(room, 'poll_over', {
                'title': room.content.title,
                'results': list(room.poll_results),
            })
            return
        board = scoring.standings(room)
        room.leaderboard = board
        self.gateway.emit_to_host(room, 'game_over', {'leaderboard': board, 'isHost': True})
        for player_id, payload in scoring.personal_results(room, self.leaderboard_top_n).items():
            self.gateway.emit_to_player(room.players[player_id], 'game_over', payload)
