import pytest

from anonparty import db
from anonparty.exceptions import DuplicateSubmission, InvalidAnswer, InvalidPhase, InvalidTarget, NotFound
from anonparty.models import Answer, Guess, Player
from anonparty.obfuscation import reveal
from anonparty.services.game import rounds, roster


@pytest.fixture()
def answering(lobby):
    rounds.start_next_round(lobby['code'], 'host')
    return lobby


def _answer_all(code, texts):
    ids = {}
    for uid, text in texts.items():
        ids[uid] = roster.submit_answer(code, 0, uid, text).id
    return ids


def _open_guessing(code):
    rounds.close_answers(code, 'host')
    rounds.release_answers(code, 'host')


def test_second_answer_is_rejected_and_first_kept(answering):
    code = answering['code']
    roster.submit_answer(code, 0, 'p2', 'first')

    with pytest.raises(DuplicateSubmission):
        roster.submit_answer(code, 0, 'p2', 'second')

    answers = Answer.query.filter_by(room_code=code, author_id='p2').all()
    assert len(answers) == 1
    assert reveal(answers[0].payload) == 'first'
    assert db.session.get(Player, (code, 'p2')).has_answered is True


def test_answer_stored_obfuscated(answering):
    code = answering['code']
    answer = roster.submit_answer(code, 0, 'p3', 'my secret')
    assert answer.payload != 'my secret'
    assert reveal(answer.payload) == 'my secret'


def test_answer_validation(answering):
    code = answering['code']
    with pytest.raises(InvalidAnswer):
        roster.submit_answer(code, 0, 'p2', '   ')
    with pytest.raises(InvalidAnswer):
        roster.submit_answer(code, 0, 'p2', 'x' * 501)
    with pytest.raises(InvalidPhase):
        roster.submit_answer(code, 1, 'p2', 'wrong round')
    with pytest.raises(NotFound):
        roster.submit_answer(code, 0, 'stranger', 'hello')
    assert Answer.query.filter_by(room_code=code).count() == 0


def test_answer_outside_collecting_phase(lobby):
    with pytest.raises(InvalidPhase):
        roster.submit_answer(lobby['code'], 0, 'p2', 'too early')


def test_answers_hidden_until_released(answering):
    code = answering['code']
    _answer_all(code, {'host': 'a', 'p2': 'b', 'p3': 'c'})

    assert roster.list_revealed_answers(code, 'p2') == []
    rounds.close_answers(code, 'host')
    assert roster.list_revealed_answers(code, 'p2') == []

    rounds.release_answers(code, 'host')
    visible = roster.list_revealed_answers(code, 'p2')
    assert len(visible) == 3
    assert sorted(a['text'] for a in visible) == ['a', 'b', 'c']
    assert [a['is_mine'] for a in visible].count(True) == 1
    assert all('author_id' not in a for a in visible)


def test_second_guess_on_same_answer_is_rejected(answering):
    code = answering['code']
    ids = _answer_all(code, {'host': 'a', 'p2': 'b', 'p3': 'c'})
    _open_guessing(code)

    roster.submit_guess(code, ids['p3'], 'p2', 'p3')
    with pytest.raises(DuplicateSubmission):
        roster.submit_guess(code, ids['p3'], 'p2', 'host')

    guesses = Guess.query.filter_by(answer_id=ids['p3'], guesser_id='p2').all()
    assert len(guesses) == 1
    assert guesses[0].guessed_player_id == 'p3'
    assert db.session.get(Player, (code, 'p2')).has_guessed is True


def test_guess_targets(answering):
    code = answering['code']
    ids = _answer_all(code, {'host': 'a', 'p2': 'b', 'p3': 'c'})
    _open_guessing(code)

    with pytest.raises(InvalidTarget):
        roster.submit_guess(code, ids['host'], 'p2', 'p2')
    with pytest.raises(InvalidTarget):
        roster.submit_guess(code, ids['p2'], 'p2', 'p3')
    with pytest.raises(InvalidTarget):
        roster.submit_guess(code, ids['host'], 'p2', 'nobody')
    with pytest.raises(NotFound):
        roster.submit_guess(code, 'missing', 'p2', 'p3')
    assert Guess.query.filter_by(room_code=code).count() == 0


def test_guess_before_release(answering):
    code = answering['code']
    ids = _answer_all(code, {'host': 'a', 'p2': 'b'})
    with pytest.raises(InvalidPhase):
        roster.submit_guess(code, ids['host'], 'p2', 'host')


def test_my_guess_shows_in_revealed_answers(answering):
    code = answering['code']
    ids = _answer_all(code, {'host': 'a', 'p2': 'b', 'p3': 'c'})
    _open_guessing(code)
    roster.submit_guess(code, ids['host'], 'p3', 'p2')

    by_id = {a['id']: a for a in roster.list_revealed_answers(code, 'p3')}
    assert by_id[ids['host']]['my_guess'] == 'p2'
    assert by_id[ids['p2']]['my_guess'] is None


def test_round_results_after_scoring(answering):
    code = answering['code']
    ids = _answer_all(code, {'host': 'a', 'p2': 'b', 'p3': 'c'})
    _open_guessing(code)
    roster.submit_guess(code, ids['host'], 'p2', 'host')
    roster.submit_guess(code, ids['p2'], 'p3', 'host')

    with pytest.raises(InvalidPhase):
        roster.round_results(code, 'p2')
    rounds.advance(code, 'host')

    results = roster.round_results(code, 'p2')
    assert results['round_index'] == 0
    assert results['deltas'] == {'p2': 1}
    assert results['scores'] == {'host': 0, 'p2': 1, 'p3': 0}
    by_answer = {a['answer_id']: a for a in results['answers']}
    assert by_answer[ids['host']]['author_name'] == 'Hosty'
    assert by_answer[ids['host']]['guesses'][0]['correct'] is True
    assert by_answer[ids['p2']]['guesses'][0]['correct'] is False


def test_list_players_skips_players_who_left(lobby):
    from anonparty.services.game import registry

    registry.leave_room(lobby['code'], 'p3')
    names = [p['name'] for p in roster.list_players(lobby['code'])]
    assert names == ['Hosty', 'Bea']


def test_one_guess_per_round_whichever_answer(answering):
    code = answering['code']
    ids = _answer_all(code, {'host': 'a', 'p2': 'b', 'p3': 'c'})
    _open_guessing(code)

    # every player tries to attribute every other answer, all correctly
    accepted = {}
    for guesser in ('host', 'p2', 'p3'):
        for author in ('host', 'p2', 'p3'):
            if author == guesser:
                continue
            try:
                roster.submit_guess(code, ids[author], guesser, author)
            except DuplicateSubmission:
                continue
            accepted[guesser] = accepted.get(guesser, 0) + 1

    assert accepted == {'host': 1, 'p2': 1, 'p3': 1}
    assert Guess.query.filter_by(room_code=code).count() == 3

    rounds.advance(code, 'host')
    db.session.expire_all()
    scores = {p.user_id: p.score for p in Player.query.filter_by(room_code=code).all()}
    assert scores == {'host': 1, 'p2': 1, 'p3': 1}


def test_list_my_guesses_only_shows_own(answering):
    code = answering['code']
    ids = _answer_all(code, {'host': 'a', 'p2': 'b', 'p3': 'c'})
    _open_guessing(code)
    roster.submit_guess(code, ids['host'], 'p2', 'host')
    roster.submit_guess(code, ids['p2'], 'p3', 'host')

    mine = roster.list_my_guesses(code, 'p2')
    assert [(g['answer_id'], g['guessed_player_id']) for g in mine] == [(ids['host'], 'host')]
    assert roster.list_my_guesses(code, 'host') == []
