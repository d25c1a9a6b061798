from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from anonparty.exceptions import GameError, NotFound
from anonparty.prompts import DEFAULT_PROMPTS
from anonparty.share import parse_share_link, share_payload
from anonparty.services.game import registry, rounds, roster
from anonparty.services.game.registry import room_state

rooms = Blueprint('rooms', __name__)


@rooms.errorhandler(GameError)
def handle_game_error(exc):
    return jsonify(exc.to_dict()), exc.status_code


def _payload():
    return request.get_json(silent=True) or {}


def _state(code):
    return jsonify(room_state(code, viewer_id=current_user.id))


@rooms.route('/prompts', methods=['GET'])
def list_prompts():
    return jsonify({'prompts': DEFAULT_PROMPTS})


@rooms.route('', methods=['POST'])
@login_required
def create_room():
    """Create a room with the current user as host."""
    data = _payload()
    total_rounds = data.get('total_rounds')
    try:
        total_rounds = int(total_rounds) if total_rounds is not None else None
    except (TypeError, ValueError):
        total_rounds = None
    room = registry.create_room(
        host_id=current_user.id,
        host_name=data.get('name') or current_user.display_name,
        total_rounds=total_rounds,
    )
    return jsonify(room_state(room.code, viewer_id=current_user.id)), 201


@rooms.route('/join', methods=['POST'])
@login_required
def join_room():
    data = _payload()
    code, passcode = data.get('room_code'), data.get('passcode')
    if data.get('link'):
        try:
            code, passcode = parse_share_link(data['link'])
        except ValueError:
            return jsonify({'error': 'invalid_payload', 'message': 'That link is not a room link.'}), 400
    if not code or not passcode:
        return jsonify({'error': 'invalid_payload', 'message': 'Room code and passcode are required'}), 400

    player = registry.join_room(code, passcode, current_user.id, data.get('name') or current_user.display_name)
    return jsonify(room_state(player.room_code, viewer_id=current_user.id)), 200


@rooms.route('/<string:code>', methods=['GET'])
@login_required
def get_room_state(code):
    return _state(code)


@rooms.route('/<string:code>/share', methods=['GET'])
@login_required
def share_room(code):
    state = room_state(code, viewer_id=current_user.id)
    if state['me'] is None:
        raise NotFound('You are not a player in this room.')
    room = state['room']
    return jsonify(share_payload(current_app.config.get('PUBLIC_BASE_URL', ''), room['code'], room['passcode']))


@rooms.route('/<string:code>/leave', methods=['POST'])
@login_required
def leave_room(code):
    deleted = registry.leave_room(code, current_user.id)
    return jsonify({'message': 'You have left the room.', 'room_deleted': deleted})


@rooms.route('/<string:code>/end', methods=['POST'])
@login_required
def end_game(code):
    registry.end_game(code, current_user.id)
    return jsonify({'message': 'The room was closed.'})


@rooms.route('/<string:code>/restart', methods=['POST'])
@login_required
def play_again(code):
    registry.play_again(code, current_user.id)
    return _state(code)


@rooms.route('/<string:code>/prepare', methods=['POST'])
@login_required
def prepare_round(code):
    rounds.prepare_round(code, current_user.id)
    return _state(code)


@rooms.route('/<string:code>/start', methods=['POST'])
@login_required
def start_next_round(code):
    rounds.start_next_round(code, current_user.id)
    return _state(code)


@rooms.route('/<string:code>/close-answers', methods=['POST'])
@login_required
def close_answers(code):
    rounds.close_answers(code, current_user.id)
    return _state(code)


@rooms.route('/<string:code>/release', methods=['POST'])
@login_required
def release_answers(code):
    rounds.release_answers(code, current_user.id)
    return _state(code)


@rooms.route('/<string:code>/advance', methods=['POST'])
@login_required
def advance(code):
    rounds.advance(code, current_user.id)
    return _state(code)


@rooms.route('/<string:code>/answers', methods=['POST'])
@login_required
def submit_answer(code):
    data = _payload()
    round_index = data.get('round_index')
    try:
        round_index = int(round_index) if round_index is not None else None
    except (TypeError, ValueError):
        return jsonify({'error': 'invalid_payload', 'message': 'round_index must be a number'}), 400
    roster.submit_answer(code, round_index, current_user.id, data.get('text'))
    return jsonify({'message': 'Your answer was sent anonymously!'}), 201


@rooms.route('/<string:code>/answers', methods=['GET'])
@login_required
def list_answers(code):
    return jsonify({'answers': roster.list_revealed_answers(code, current_user.id)})


@rooms.route('/<string:code>/guesses', methods=['POST'])
@login_required
def submit_guess(code):
    data = _payload()
    answer_id = data.get('answer_id')
    guessed_player_id = data.get('guessed_player_id')
    if not answer_id or not guessed_player_id:
        return jsonify({'error': 'invalid_payload', 'message': 'answer_id and guessed_player_id are required'}), 400
    roster.submit_guess(code, answer_id, current_user.id, guessed_player_id)
    return jsonify({'message': 'Your guess was recorded!'}), 201


@rooms.route('/<string:code>/results', methods=['GET'])
@login_required
def get_results(code):
    round_index = request.args.get('round', type=int)
    return jsonify(roster.round_results(code, current_user.id, round_index=round_index))
