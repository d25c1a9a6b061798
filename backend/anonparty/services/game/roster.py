import random

from flask import current_app
from sqlalchemy.exc import IntegrityError

from anonparty import db
from anonparty.config import current_rules
from anonparty.exceptions import DuplicateSubmission, InvalidAnswer, InvalidPhase, InvalidTarget, NotFound
from anonparty.models import Answer, Guess, Phase, Question
from anonparty.obfuscation import obfuscate, reveal
from anonparty.policy import require_member
from anonparty.store import transactional
from .progress import live_players
from .registry import get_player, get_room
from .scoring import compute_deltas


def _require_live_member(room, user_id):
    player = require_member(room, user_id)
    if not player.active:
        raise NotFound('You are not a player in this room.')
    return player


def list_players(code):
    room = get_room(code)
    return [p.to_dict() for p in live_players(room.players)]


@transactional
def submit_answer(code, round_index, user_id, text, rules=None) -> Answer:
    """Record a player's answer for the current round.

    The existence check, the insert and the ``has_answered`` flag are one
    transaction; the unique (room, round, author) constraint catches a
    concurrent duplicate that slipped past the check.
    """
    rules = rules or current_rules()
    room = get_room(code)
    player = _require_live_member(room, user_id)
    if room.phase != Phase.COLLECTING_ANSWERS:
        raise InvalidPhase('Answers are not being collected right now.')
    if round_index is None:
        round_index = room.current_round_index
    if int(round_index) != room.current_round_index:
        raise InvalidPhase('That round is not open.')

    body = (text or '').strip()
    if not body or len(body) > rules.max_answer_length:
        raise InvalidAnswer(f'Answers must be between 1 and {rules.max_answer_length} characters.')

    existing = Answer.query.filter_by(room_code=room.code, round_index=room.current_round_index,
                                      author_id=user_id).first()
    if existing is not None:
        raise DuplicateSubmission('You already answered this round.')

    answer = Answer(room_code=room.code, round_index=room.current_round_index,
                    author_id=user_id, payload=obfuscate(body), released=False)
    db.session.add(answer)
    player.has_answered = True
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise DuplicateSubmission('You already answered this round.') from exc
    current_app.logger.info(f"[answer] room={room.code} round={room.current_round_index} user={user_id}")
    return answer


@transactional
def submit_guess(code, answer_id, guesser_id, guessed_player_id) -> Guess:
    """Record who the guesser thinks wrote ``answer_id``.

    Each player gets a single guess per round.
    """
    room = get_room(code)
    guesser = _require_live_member(room, guesser_id)
    if room.phase != Phase.COLLECTING_GUESSES:
        raise InvalidPhase('Guesses are not being collected right now.')

    answer = db.session.get(Answer, answer_id) if answer_id else None
    if answer is None or answer.room_code != room.code:
        raise NotFound('Answer not found.')
    if answer.round_index != room.current_round_index or not answer.released:
        raise InvalidTarget('That answer is not open for guessing.')

    # one guess per player per round; the (answer, guesser) constraint backs this up
    if guesser.has_guessed:
        raise DuplicateSubmission('You already guessed this round.')
    existing = Guess.query.filter_by(answer_id=answer.id, guesser_id=guesser_id).first()
    if existing is not None:
        raise DuplicateSubmission('You already guessed this answer.')

    if guessed_player_id == guesser_id:
        raise InvalidTarget('You cannot guess yourself.')
    if answer.author_id == guesser_id:
        raise InvalidTarget('You cannot guess your own answer.')
    if get_player(room, guessed_player_id) is None:
        raise InvalidTarget('That player is not in this room.')

    guess = Guess(room_code=room.code, round_index=room.current_round_index, answer_id=answer.id,
                  guesser_id=guesser_id, guessed_player_id=guessed_player_id)
    db.session.add(guess)
    guesser.has_guessed = True
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise DuplicateSubmission('You already guessed this answer.') from exc
    current_app.logger.info(f"[guess] room={room.code} round={room.current_round_index} user={guesser_id}")
    return guess


def list_revealed_answers(code, viewer_id):
    """Answers of the current round a member may read, shuffled and without authors.

    Empty until the host releases the round.
    """
    room = get_room(code)
    _require_live_member(room, viewer_id)
    if room.current_round_index < 0:
        return []
    question = db.session.get(Question, (room.code, room.current_round_index))
    if question is None or not question.reveal:
        return []
    answers = Answer.query.filter_by(room_code=room.code, round_index=room.current_round_index,
                                     released=True).all()
    my_guesses = {
        g.answer_id: g.guessed_player_id
        for g in Guess.query.filter_by(room_code=room.code, round_index=room.current_round_index,
                                       guesser_id=viewer_id).all()
    }
    visible = [
        {
            'id': a.id,
            'text': reveal(a.payload),
            'is_mine': a.author_id == viewer_id,
            'my_guess': my_guesses.get(a.id),
        }
        for a in answers
    ]
    random.shuffle(visible)
    return visible


def list_my_guesses(code, viewer_id):
    room = get_room(code)
    _require_live_member(room, viewer_id)
    if room.current_round_index < 0:
        return []
    guesses = Guess.query.filter_by(room_code=room.code, round_index=room.current_round_index,
                                    guesser_id=viewer_id).all()
    return [g.to_dict() for g in guesses]


def round_results(code, viewer_id, round_index=None):
    """Who wrote what and who guessed right, once the round is scored."""
    room = get_room(code)
    _require_live_member(room, viewer_id)
    if round_index is None:
        round_index = room.current_round_index
    question = db.session.get(Question, (room.code, round_index)) if round_index is not None else None
    if question is None or not question.scored:
        raise InvalidPhase('Results are available once the round is scored.')

    names = {p.user_id: p.name for p in room.players}
    answers = Answer.query.filter_by(room_code=room.code, round_index=round_index).all()
    guesses = Guess.query.filter_by(room_code=room.code, round_index=round_index).all()
    by_answer = {}
    for g in guesses:
        by_answer.setdefault(g.answer_id, []).append(g)

    results = []
    for a in answers:
        results.append({
            'answer_id': a.id,
            'text': reveal(a.payload),
            'author_id': a.author_id,
            'author_name': names.get(a.author_id),
            'guesses': [
                {
                    'guesser_id': g.guesser_id,
                    'guessed_player_id': g.guessed_player_id,
                    'correct': g.guessed_player_id == a.author_id,
                }
                for g in by_answer.get(a.id, [])
            ],
        })
    return {
        'round_index': round_index,
        'prompt': question.prompt,
        'answers': results,
        'deltas': compute_deltas(answers, guesses),
        'scores': {p.user_id: p.score for p in live_players(room.players)},
    }
