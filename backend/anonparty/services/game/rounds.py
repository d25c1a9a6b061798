"""Room state machine.

Phases run::

    PRE_START -> ROUND_READY -> COLLECTING_ANSWERS -> REVIEW_PENDING
      -> COLLECTING_GUESSES -> SCORING -> (ROUND_READY | COLLECTING_ANSWERS | FINISHED)

Every transition is host-only and runs as a single transaction. Nothing
advances on its own: the progress predicates tell the host's controls when a
phase is complete, and the host decides when to move on.
"""

from flask import current_app

from anonparty import db
from anonparty.config import current_rules
from anonparty.exceptions import InvalidPhase, NotEnoughPlayers
from anonparty.models import Phase, Question
from anonparty.policy import require_host
from anonparty.store import transactional
from . import scoring
from .progress import live_players
from .registry import get_room

# Phases from which the next round may be started
STARTABLE = (Phase.PRE_START, Phase.ROUND_READY, Phase.SCORING)


def _require_enough_players(room, rules):
    count = len(live_players(room.players))
    if count < rules.min_players:
        raise NotEnoughPlayers(f'At least {rules.min_players} players are required to start.')


@transactional
def prepare_round(code, user_id, rules=None):
    """Move to ROUND_READY: the lobby is closed and the next prompt is about to be shown."""
    rules = rules or current_rules()
    room = get_room(code)
    require_host(room, user_id)
    if room.phase not in (Phase.PRE_START, Phase.SCORING):
        raise InvalidPhase()
    if room.phase == Phase.PRE_START:
        _require_enough_players(room, rules)
    room.phase = Phase.ROUND_READY
    current_app.logger.info(f"[round-ready] room={room.code} next={room.current_round_index + 1}")
    return room


@transactional
def start_next_round(code, user_id, rules=None):
    """Open the next round, or finish the game after the last one.

    Advancing the round index, switching the phase, resetting every player's
    flags and creating the round's question happen in one transaction, so no
    reader sees the new round with stale flags.
    """
    rules = rules or current_rules()
    room = get_room(code)
    require_host(room, user_id)
    if room.phase not in STARTABLE:
        raise InvalidPhase()
    if room.current_round_index < 0:
        _require_enough_players(room, rules)

    next_index = room.current_round_index + 1
    if next_index >= room.total_rounds:
        room.phase = Phase.FINISHED
        current_app.logger.info(f"[finish] room={room.code} finished at round={room.current_round_index}")
        return room

    room.current_round_index = next_index
    room.phase = Phase.COLLECTING_ANSWERS
    for player in room.players:
        player.has_answered = False
        player.has_guessed = False
    db.session.add(Question(
        room_code=room.code,
        round_index=next_index,
        prompt=room.prompts[next_index],
        reveal=False,
    ))
    current_app.logger.info(f"[round-start] room={room.code} round={next_index} of={room.total_rounds}")
    return room


@transactional
def close_answers(code, user_id):
    room = get_room(code)
    require_host(room, user_id)
    if room.phase != Phase.COLLECTING_ANSWERS:
        raise InvalidPhase()
    room.phase = Phase.REVIEW_PENDING
    current_app.logger.info(f"[answers-closed] room={room.code} round={room.current_round_index}")
    return room


@transactional
def release_answers(code, user_id):
    """Reveal the round's answers and open guessing."""
    room = get_room(code)
    require_host(room, user_id)
    if room.phase != Phase.REVIEW_PENDING:
        raise InvalidPhase()
    question = db.session.get(Question, (room.code, room.current_round_index))
    if question is None:
        raise InvalidPhase('No question for this round.')
    question.reveal = True
    for answer in room.answers:
        if answer.round_index == room.current_round_index:
            answer.released = True
    room.phase = Phase.COLLECTING_GUESSES
    current_app.logger.info(f"[answers-released] room={room.code} round={room.current_round_index}")
    return room


@transactional
def advance(code, user_id):
    """COLLECTING_GUESSES -> SCORING (scores the round); SCORING -> next round."""
    room = get_room(code)
    require_host(room, user_id)
    if room.phase == Phase.COLLECTING_GUESSES:
        room.phase = Phase.SCORING
        db.session.flush()
        scoring.compute_and_apply(room.code, room.current_round_index)
        return room
    if room.phase == Phase.SCORING:
        return start_next_round(code, user_id)
    raise InvalidPhase()
