from types import SimpleNamespace

from anonparty.models import Phase
from anonparty.services.game import progress


def _room(phase):
    return SimpleNamespace(phase=phase)


def _player(answered=False, guessed=False, active=True):
    return SimpleNamespace(has_answered=answered, has_guessed=guessed, active=active)


def test_all_answered_counts_live_players_only():
    players = [_player(answered=True), _player(answered=True), _player(answered=False, active=False)]
    assert progress.all_answered(_room(Phase.COLLECTING_ANSWERS), players) is True
    players.append(_player(answered=False))
    assert progress.all_answered(_room(Phase.COLLECTING_ANSWERS), players) is False


def test_empty_roster_is_never_complete():
    assert progress.all_answered(_room(Phase.COLLECTING_ANSWERS), []) is False
    assert progress.all_guessed(_room(Phase.COLLECTING_GUESSES), []) is False


def test_can_start_bounds():
    assert progress.can_start(_room(Phase.PRE_START), [_player()] * 2) is False
    assert progress.can_start(_room(Phase.PRE_START), [_player()] * 3) is True
    assert progress.can_start(_room(Phase.PRE_START), [_player()] * 8) is True
    assert progress.can_start(_room(Phase.PRE_START), [_player()] * 9) is False


def test_round_complete_per_phase():
    done = [_player(answered=True, guessed=True)] * 3
    waiting = [_player(answered=True, guessed=False)] * 2 + [_player()]

    assert progress.round_complete(_room(Phase.COLLECTING_ANSWERS), done) is True
    assert progress.round_complete(_room(Phase.COLLECTING_ANSWERS), waiting) is False
    assert progress.round_complete(_room(Phase.COLLECTING_GUESSES), waiting) is False
    assert progress.round_complete(_room(Phase.REVIEW_PENDING), waiting) is True
    assert progress.round_complete(_room(Phase.SCORING), done, scored=False) is False
    assert progress.round_complete(_room(Phase.SCORING), done, scored=True) is True
    assert progress.round_complete(_room(Phase.FINISHED), done) is False
