from flask import current_app

from anonparty import db
from anonparty.exceptions import InvalidPhase, NotFound
from anonparty.models import Answer, Guess, Phase, Question
from anonparty.store import transactional
from .registry import get_room


def compute_deltas(answers, guesses) -> dict:
    """Score delta per player for one round.

    +1 to the guesser for each guess that names the true author of the
    guessed answer. Players with nothing earned are left out.
    """
    authors = {a.id: a.author_id for a in answers}
    deltas = {}
    for g in guesses:
        author_id = authors.get(g.answer_id)
        if author_id is None or g.guesser_id == author_id:
            continue
        if g.guessed_player_id == author_id:
            deltas[g.guesser_id] = deltas.get(g.guesser_id, 0) + 1
    return {pid: d for pid, d in deltas.items() if d}


@transactional
def compute_and_apply(code, round_index) -> dict:
    """Apply the round's score deltas exactly once.

    The question's ``scored`` flag is checked and set in the same transaction
    that increments the scores, so calling this again for a scored round
    changes nothing and returns an empty mapping.
    """
    room = get_room(code)
    if room.phase != Phase.SCORING:
        raise InvalidPhase('Scores are only computed during scoring.')
    question = db.session.get(Question, (room.code, round_index))
    if question is None:
        raise NotFound('No question for that round.')
    if question.scored:
        current_app.logger.info(f"[score-skip] room={room.code} round={round_index} already scored")
        return {}

    answers = Answer.query.filter_by(room_code=room.code, round_index=round_index).all()
    guesses = Guess.query.filter_by(room_code=room.code, round_index=round_index).all()
    deltas = compute_deltas(answers, guesses)

    applied = {}
    for player in room.players:
        delta = deltas.get(player.user_id)
        # players who left keep what they earned but score nothing new
        if delta and player.active:
            player.score = player.score + delta
            applied[player.user_id] = delta
    question.scored = True
    current_app.logger.info(f"[score-apply] room={room.code} round={round_index} deltas={applied}")
    return applied
