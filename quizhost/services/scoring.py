"""Scoring and tallies for both room variants.

Pure functions over ``Room``/``Player`` state; the cycle controller calls
them under the room lock and decides what to emit.
"""

import math

from quizhost.models import QUIZ


def question_points(remaining, time_limit, base=600, bonus=400):
    """Points for a correct answer.

    ``remaining`` is reported by the client and clamped to
    ``[0, time_limit]`` so forged values cannot exceed ``base + bonus``.
    """
    try:
        remaining = float(remaining)
    except (TypeError, ValueError):
        remaining = 0.0
    if math.isnan(remaining):
        remaining = 0.0
    safe = min(max(remaining, 0.0), float(time_limit))
    # Round half up
    return int(math.floor(base + bonus * (safe / time_limit) + 0.5))


def record_answer(room, player, answer_index, remaining, now, base=600, bonus=400):
    """Apply a quiz answer. Returns the points awarded, or None if dropped."""
    question = room.current_question
    if question is None or player.has_submitted:
        return None
    if not 0 <= answer_index < len(question.options):
        return None
    player.has_submitted = True
    room.submissions_this_round += 1
    if answer_index == question.correct_answer:
        points = question_points(remaining, question.time_limit, base, bonus)
        player.score += points
        player.streak += 1
        player.last_scored_at = now
        return points
    player.streak = 0
    return 0


def record_vote(room, player, option_index):
    """Apply a poll vote. Returns how many others chose the same option, or None if dropped."""
    question = room.current_question
    if question is None or player.has_submitted:
        return None
    if not 0 <= option_index < len(question.options):
        return None
    player.has_submitted = True
    player.votes[room.current_question_index] = option_index
    room.submissions_this_round += 1
    room.vote_counts[option_index] += 1
    return room.vote_counts[option_index] - 1


def vote_distribution(room):
    question = room.current_question
    if question is None:
        return []
    total = sum(room.vote_counts)
    data = []
    for idx, option in enumerate(question.options):
        count = room.vote_counts[idx] if idx < len(room.vote_counts) else 0
        percentage = int(math.floor(count * 100.0 / total + 0.5)) if total else 0
        data.append({'option': option, 'count': count, 'percentage': percentage})
    return data


def all_submitted(room):
    return bool(room.players) and room.submissions_this_round >= len(room.players)


def ranked_players(room):
    """Players by score, highest first.

    Ties go to whoever reached their score first (``last_scored_at``), then
    to join order.
    """
    return sorted(
        room.players.values(),
        key=lambda p: (
            -p.score,
            p.last_scored_at if p.last_scored_at is not None else math.inf,
            p.join_seq,
        ),
    )


def standings(room, include_ids=True):
    """Ranked leaderboard entries.

    Player ids double as restore credentials, so only host-bound payloads
    carry them.
    """
    board = []
    for rank, p in enumerate(ranked_players(room), start=1):
        entry = {'name': p.name, 'score': p.score, 'avatarIndex': p.avatar_index, 'rank': rank}
        if include_ids:
            entry['id'] = p.id
        board.append(entry)
    return board


def personal_results(room, top_n=5):
    """Per-player game-over payloads keyed by player id.

    Each player gets their own rank plus a capped top-N view instead of the
    full roster.
    """
    ranked = ranked_players(room)
    top = standings(room, include_ids=False)[:top_n]
    total = len(ranked)
    results = {}
    for rank, player in enumerate(ranked, start=1):
        results[player.id] = {
            'leaderboard': top,
            'playerRank': rank,
            'playerScore': player.score,
            'totalPlayers': total,
            'isHost': False,
        }
    return results


def reset_scores(room):
    for player in room.players.values():
        if room.mode == QUIZ:
            player.reset_game()
        else:
            player.reset_round()
            player.votes.clear()
