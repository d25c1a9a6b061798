import random

from flask import current_app
from sqlalchemy.exc import IntegrityError

from anonparty import db
from anonparty.config import current_rules
from anonparty.exceptions import (
    AlreadyStarted,
    CreationError,
    Forbidden,
    Full,
    InvalidPhase,
    NotFound,
    StoreUnavailable,
)
from anonparty.models import Answer, Guess, Phase, Player, Question, Room, generate_passcode, generate_room_code
from anonparty.policy import require_host
from anonparty.prompts import DEFAULT_PROMPTS
from anonparty.store import run_transaction, transactional
from .progress import all_answered, all_guessed, live_players, round_complete


def normalize_code(code) -> str:
    return (code or '').strip().upper()


def get_room(code) -> Room:
    room = db.session.get(Room, normalize_code(code))
    if room is None:
        raise NotFound('Room not found.')
    return room


def get_player(room, user_id):
    return db.session.get(Player, (room.code, user_id))


def _clean_name(name, rules):
    cleaned = ' '.join((name or '').split())[:rules.max_name_length]
    return cleaned or 'Player'


def _sample_prompts(pool, total_rounds):
    prompts = [p for p in pool if p and p.strip()]
    if not prompts:
        raise CreationError('The question bank is empty.')
    return random.sample(prompts, min(total_rounds, len(prompts)))


def _insert_room(code, host_id, host_name, prompts):
    if db.session.get(Room, code) is not None:
        return None
    room = Room(
        code=code,
        passcode=generate_passcode(len(code)),
        host_id=host_id,
        phase=Phase.PRE_START,
        current_round_index=-1,
        total_rounds=len(prompts),
        participant_count=1,
    )
    room.prompts = prompts
    db.session.add(room)
    db.session.add(Player(room_code=code, user_id=host_id, name=host_name, is_host=True, score=0))
    db.session.flush()
    return room


def create_room(host_id, host_name, total_rounds=None, prompt_pool=None, rules=None) -> Room:
    """Create a room with the host as its first player.

    The prompts for every round are sampled once here so all players see the
    same sequence. A code that is already taken is retried with a fresh one.
    """
    rules = rules or current_rules()
    prompts = _sample_prompts(DEFAULT_PROMPTS if prompt_pool is None else prompt_pool,
                              int(total_rounds or rules.total_rounds))
    name = _clean_name(host_name, rules)

    for attempt in range(1, rules.room_code_attempts + 1):
        code = generate_room_code(rules.room_code_length)
        try:
            room = run_transaction(_insert_room, code, host_id, name, prompts)
        except IntegrityError:
            room = None
        except StoreUnavailable as exc:
            current_app.logger.error(f"[room-create-failed] host={host_id}: {exc}")
            raise CreationError() from exc
        if room is None:
            current_app.logger.warning(f"[room-code-collision] code={code} attempt={attempt}")
            continue
        current_app.logger.info(f"[room-create] room={room.code} host={host_id} rounds={room.total_rounds}")
        return room

    raise CreationError('Could not find a free room code.')


@transactional
def join_room(code, passcode, user_id, display_name, rules=None) -> Player:
    """Add a player to a room.

    Joining again with a user id already in the roster is idempotent: the
    existing player is returned with a refreshed name and (if they had left)
    is reactivated.
    """
    rules = rules or current_rules()
    room = get_room(code)
    if room.passcode != (passcode or '').strip():
        current_app.logger.info(f"[join-rejected] room={room.code} user={user_id} reason=passcode")
        raise Forbidden('Wrong passcode.')

    name = _clean_name(display_name, rules)
    existing = get_player(room, user_id)
    if existing is not None and existing.active:
        existing.name = name
        return existing

    if room.participant_count >= rules.max_players:
        current_app.logger.info(f"[join-rejected] room={room.code} user={user_id} reason=full")
        raise Full()
    if room.phase not in Phase.JOINABLE:
        current_app.logger.info(f"[join-rejected] room={room.code} user={user_id} reason=phase:{room.phase}")
        raise AlreadyStarted()

    if existing is not None:
        existing.active = True
        existing.name = name
        player = existing
    else:
        player = Player(room_code=room.code, user_id=user_id, name=name,
                        is_host=(room.host_id == user_id), score=0)
        db.session.add(player)
    room.participant_count = room.participant_count + 1
    current_app.logger.info(f"[join] room={room.code} user={user_id} count={room.participant_count}")
    return player


@transactional
def end_game(code, user_id) -> str:
    """Delete the room and everything in it. Subscribers see the room disappear."""
    room = get_room(code)
    require_host(room, user_id)
    room_code = room.code
    db.session.delete(room)
    current_app.logger.info(f"[room-end] room={room_code} by={user_id}")
    return room_code


@transactional
def leave_room(code, user_id) -> bool:
    """Leave a room. Returns True when the room was deleted (the host left)."""
    room = get_room(code)
    player = get_player(room, user_id)
    if player is None or not player.active:
        raise NotFound('You are not a player in this room.')
    if player.is_host:
        end_game(code, user_id)
        return True
    player.active = False
    room.participant_count = max(0, room.participant_count - 1)
    current_app.logger.info(f"[leave] room={room.code} user={user_id} count={room.participant_count}")
    return False


@transactional
def play_again(code, user_id, prompt_pool=None, rules=None) -> Room:
    """Reset a finished room to the lobby with a fresh set of prompts."""
    rules = rules or current_rules()
    room = get_room(code)
    require_host(room, user_id)
    if room.phase != Phase.FINISHED:
        raise InvalidPhase('The game is not finished yet.')

    Guess.query.filter_by(room_code=room.code).delete(synchronize_session='fetch')
    Answer.query.filter_by(room_code=room.code).delete(synchronize_session='fetch')
    Question.query.filter_by(room_code=room.code).delete(synchronize_session='fetch')
    for player in list(room.players):
        if not player.active:
            db.session.delete(player)
            continue
        player.score = 0
        player.has_answered = False
        player.has_guessed = False

    room.prompts = _sample_prompts(DEFAULT_PROMPTS if prompt_pool is None else prompt_pool, room.total_rounds)
    room.total_rounds = len(room.prompts)
    room.current_round_index = -1
    room.phase = Phase.PRE_START
    room.participant_count = len([p for p in room.players if p.active])
    current_app.logger.info(f"[play-again] room={room.code}")
    return room


def room_state(code, viewer_id=None, rules=None) -> dict:
    """Public snapshot of a room for the presentation layer.

    Answer authorship never appears here; the passcode is included for
    members only so they can share the room.
    """
    rules = rules or current_rules()
    room = get_room(code)
    players = live_players(room.players)
    viewer = next((p for p in players if p.user_id == viewer_id), None)
    question = None
    if room.current_round_index >= 0:
        question = db.session.get(Question, (room.code, room.current_round_index))

    answered = sum(1 for p in players if p.has_answered)
    guessed = sum(1 for p in players if p.has_guessed)
    return {
        'room': room.to_dict(include_passcode=viewer is not None),
        'players': [p.to_dict() for p in players],
        'question': question.to_dict() if question else None,
        'progress': {
            'answered': answered,
            'guessed': guessed,
            'all_answered': all_answered(room, players),
            'all_guessed': all_guessed(room, players),
            'round_complete': round_complete(
                room, players,
                min_players=rules.min_players,
                max_players=rules.max_players,
                scored=bool(question and question.scored),
            ),
        },
        'me': viewer.to_dict() if viewer else None,
        'is_host': bool(viewer and viewer.is_host),
    }
