from conftest import poll_content

from quizhost.services import scoring


def test_question_points_formula():
    assert scoring.question_points(20, 20) == 1000
    assert scoring.question_points(0, 20) == 600
    assert scoring.question_points(10, 20) == 800
    # Forged values are clamped into [0, limit]
    assert scoring.question_points(25, 20) == 1000
    assert scoring.question_points(-5, 20) == 600
    assert scoring.question_points('nonsense', 20) == 600


def test_question_points_custom_constants():
    assert scoring.question_points(5, 10, base=100, bonus=100) == 150


def test_answers_accepted_once_per_question(engine):
    room = engine.join(engine.create(), 'Alice', 'Bob')
    engine.cycle.start(room, 'host-sid')
    alice = room.players['id-Alice']

    first = scoring.record_answer(room, alice, 0, 20, now=1.0)
    again = scoring.record_answer(room, alice, 0, 20, now=2.0)

    assert first == 1000
    assert again is None
    assert alice.score == 1000
    assert room.submissions_this_round == 1


def test_wrong_answer_resets_streak(engine):
    room = engine.join(engine.create(), 'Alice')
    engine.cycle.start(room, 'host-sid')
    alice = room.players['id-Alice']
    alice.streak = 3

    assert scoring.record_answer(room, alice, 2, 20, now=1.0) == 0
    assert alice.streak == 0
    assert alice.score == 0


def test_out_of_range_answer_is_dropped(engine):
    room = engine.join(engine.create(), 'Alice')
    engine.cycle.start(room, 'host-sid')
    alice = room.players['id-Alice']

    assert scoring.record_answer(room, alice, 9, 20, now=1.0) is None
    assert not alice.has_submitted
    assert room.submissions_this_round == 0


def test_vote_distribution_percentages(engine):
    room = engine.join(engine.create(poll_content()), 'A', 'B', 'C')
    engine.cycle.start(room, 'host-sid')

    assert scoring.record_vote(room, room.players['id-A'], 0) == 0
    assert scoring.record_vote(room, room.players['id-B'], 0) == 1
    assert scoring.record_vote(room, room.players['id-C'], 2) == 0

    data = scoring.vote_distribution(room)
    assert [d['count'] for d in data] == [2, 0, 1]
    assert [d['percentage'] for d in data] == [67, 0, 33]
    assert data[0]['option'] == 'Red'


def test_ranking_ties_go_to_earliest_scorer(engine):
    room = engine.join(engine.create(), 'Alice', 'Bob', 'Cara')
    alice, bob, cara = (room.players[f'id-{n}'] for n in ('Alice', 'Bob', 'Cara'))
    alice.score, alice.last_scored_at = 800, 20.0
    bob.score, bob.last_scored_at = 800, 10.0
    cara.score = 0

    ranked = [p.name for p in scoring.ranked_players(room)]
    assert ranked == ['Bob', 'Alice', 'Cara']


def test_personal_results_ranks_and_cap(engine):
    room = engine.create()
    names = [f'P{i}' for i in range(7)]
    engine.join(room, *names)
    for i, name in enumerate(names):
        room.players[f'id-{name}'].score = i * 100
        room.players[f'id-{name}'].last_scored_at = float(i)

    results = scoring.personal_results(room, top_n=5)

    assert results['id-P6']['playerRank'] == 1
    assert results['id-P0']['playerRank'] == 7
    assert results['id-P0']['totalPlayers'] == 7
    assert len(results['id-P0']['leaderboard']) == 5
    assert all('id' not in entry for entry in results['id-P0']['leaderboard'])
    assert sorted(r['playerRank'] for r in results.values()) == list(range(1, 8))


def test_standings_ids_only_on_request(engine):
    room = engine.join(engine.create(), 'Alice', 'Bob')

    assert [e['id'] for e in scoring.standings(room)] == ['id-Alice', 'id-Bob']
    public = scoring.standings(room, include_ids=False)
    assert [(e['name'], e['rank']) for e in public] == [('Alice', 1), ('Bob', 2)]
    assert all('id' not in e for e in public)
