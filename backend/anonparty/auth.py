from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from anonparty import db
from anonparty.config import current_rules
from anonparty.models import User

auth = Blueprint('auth', __name__)


def _display_name(raw):
    rules = current_rules()
    return ' '.join((raw or '').split())[:rules.max_name_length]


@auth.route('/anonymous', methods=['POST'])
def sign_in_anonymously():
    """Create a throwaway identity and sign it in."""
    data = request.get_json(silent=True) or {}
    user = User(display_name=_display_name(data.get('name')) or 'Player', is_anonymous_account=True)
    db.session.add(user)
    db.session.commit()
    login_user(user, remember=True)
    current_app.logger.info(f"[auth-anonymous] user={user.id}")
    return jsonify({'user': user.to_dict()}), 201


@auth.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    if not username or not password:
        return jsonify({'error': 'invalid_payload', 'message': 'Missing username or password'}), 400

    if User.query.filter_by(username=username).first():
        return jsonify({'error': 'username_taken', 'message': 'Username already exists'}), 400

    user = User(username=username, display_name=_display_name(data.get('name')) or username)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    login_user(user, remember=True)
    return jsonify({'user': user.to_dict()}), 201


@auth.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user = User.query.filter_by(username=(data.get('username') or '').strip()).first()
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        return jsonify({'user': user.to_dict()})
    return jsonify({'error': 'invalid_credentials', 'message': 'Invalid username or password'}), 401


@auth.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'user': current_user.to_dict()})


@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})
