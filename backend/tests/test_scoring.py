from types import SimpleNamespace

import pytest

from anonparty import db
from anonparty.exceptions import InvalidPhase
from anonparty.models import Player, Question
from anonparty.services.game import registry, rounds, roster, scoring


def _answer(id_, author_id):
    return SimpleNamespace(id=id_, author_id=author_id)


def _guess(answer_id, guesser_id, guessed_player_id):
    return SimpleNamespace(answer_id=answer_id, guesser_id=guesser_id, guessed_player_id=guessed_player_id)


def test_compute_deltas_counts_correct_guesses():
    answers = [_answer('a1', 'ann'), _answer('a2', 'bob'), _answer('a3', 'cat')]
    guesses = [
        _guess('a1', 'bob', 'ann'),
        _guess('a3', 'bob', 'cat'),
        _guess('a2', 'cat', 'ann'),
        _guess('a2', 'ann', 'bob'),
    ]
    assert scoring.compute_deltas(answers, guesses) == {'bob': 2, 'ann': 1}


def test_compute_deltas_ignores_own_answer_and_unknown_answers():
    answers = [_answer('a1', 'ann')]
    guesses = [_guess('a1', 'ann', 'ann'), _guess('zz', 'bob', 'ann')]
    assert scoring.compute_deltas(answers, guesses) == {}


@pytest.fixture()
def scored_round(lobby):
    code = lobby['code']
    rounds.start_next_round(code, 'host')
    ids = {uid: roster.submit_answer(code, 0, uid, f'text {uid}').id for uid in lobby['players']}
    rounds.close_answers(code, 'host')
    rounds.release_answers(code, 'host')
    roster.submit_guess(code, ids['p2'], 'host', 'p2')
    roster.submit_guess(code, ids['p3'], 'p2', 'p3')
    roster.submit_guess(code, ids['host'], 'p3', 'host')
    return lobby


def _scores(code):
    db.session.expire_all()
    return {p.user_id: p.score for p in Player.query.filter_by(room_code=code).all()}


def test_scoring_twice_changes_nothing(scored_round):
    code = scored_round['code']
    rounds.advance(code, 'host')
    assert _scores(code) == {'host': 1, 'p2': 1, 'p3': 1}
    assert db.session.get(Question, (code, 0)).scored is True

    assert scoring.compute_and_apply(code, 0) == {}
    assert _scores(code) == {'host': 1, 'p2': 1, 'p3': 1}


def test_scoring_outside_scoring_phase(scored_round):
    with pytest.raises(InvalidPhase):
        scoring.compute_and_apply(scored_round['code'], 0)
    assert _scores(scored_round['code']) == {'host': 0, 'p2': 0, 'p3': 0}


def test_player_who_left_keeps_score_but_earns_nothing(scored_round):
    code = scored_round['code']
    registry.leave_room(code, 'p3')
    rounds.advance(code, 'host')

    scores = _scores(code)
    assert scores == {'host': 1, 'p2': 1, 'p3': 0}
    assert db.session.get(Player, (code, 'p3')).active is False
