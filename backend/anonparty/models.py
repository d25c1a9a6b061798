from anonparty import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
import json
import secrets
import string
import uuid

CODE_ALPHABET = string.ascii_uppercase + string.digits


def _new_id():
    return uuid.uuid4().hex


def _utcnow():
    return datetime.now(timezone.utc)


def generate_room_code(length=6):
    """Generate a short, human-shareable room code."""
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def generate_passcode(length=6):
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class Phase:
    PRE_START = 'PRE_START'
    ROUND_READY = 'ROUND_READY'
    COLLECTING_ANSWERS = 'COLLECTING_ANSWERS'
    REVIEW_PENDING = 'REVIEW_PENDING'
    COLLECTING_GUESSES = 'COLLECTING_GUESSES'
    SCORING = 'SCORING'
    FINISHED = 'FINISHED'

    ALL = (PRE_START, ROUND_READY, COLLECTING_ANSWERS, REVIEW_PENDING,
           COLLECTING_GUESSES, SCORING, FINISHED)
    # Phases in which new players may join
    JOINABLE = (PRE_START, FINISHED)
    # Phases with a live round index
    IN_ROUND = (COLLECTING_ANSWERS, REVIEW_PENDING, COLLECTING_GUESSES, SCORING)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    username = db.Column(db.String(64), unique=True, nullable=True, index=True)
    password_hash = db.Column(db.String(128), nullable=True)
    display_name = db.Column(db.String(64), nullable=False, default='Player')
    is_anonymous_account = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        if not self.password_hash:
            return False
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'display_name': self.display_name,
            'anonymous': self.is_anonymous_account,
        }


class Room(db.Model):
    __tablename__ = 'room'
    code = db.Column(db.String(16), primary_key=True)
    passcode = db.Column(db.String(16), nullable=False)
    host_id = db.Column(db.String(32), nullable=False, index=True)
    phase = db.Column(db.String(32), nullable=False, default=Phase.PRE_START)
    current_round_index = db.Column(db.Integer, nullable=False, default=-1)
    total_rounds = db.Column(db.Integer, nullable=False)
    prompts_json = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded list of prompt strings
    participant_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    # Bumped on every write; concurrent read-modify-write raises StaleDataError
    version = db.Column(db.Integer, nullable=False)
    __mapper_args__ = {'version_id_col': version}

    players = db.relationship('Player', back_populates='room', cascade='all, delete',
                              order_by='Player.joined_at')
    questions = db.relationship('Question', back_populates='room', cascade='all, delete')
    answers = db.relationship('Answer', back_populates='room', cascade='all, delete')
    guesses = db.relationship('Guess', back_populates='room', cascade='all, delete')

    @property
    def prompts(self):
        return json.loads(self.prompts_json or '[]')

    @prompts.setter
    def prompts(self, value):
        self.prompts_json = json.dumps(list(value))

    @property
    def current_prompt(self):
        prompts = self.prompts
        if 0 <= self.current_round_index < len(prompts):
            return prompts[self.current_round_index]
        return None

    def to_dict(self, include_passcode=False):
        data = {
            'code': self.code,
            'host_id': self.host_id,
            'phase': self.phase,
            'current_round_index': self.current_round_index,
            'total_rounds': self.total_rounds,
            'participant_count': self.participant_count,
            'version': self.version,
        }
        if include_passcode:
            data['passcode'] = self.passcode
        return data


class Player(db.Model):
    __tablename__ = 'player'
    room_code = db.Column(db.String(16), db.ForeignKey('room.code'), primary_key=True)
    user_id = db.Column(db.String(32), primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    is_host = db.Column(db.Boolean, nullable=False, default=False)
    score = db.Column(db.Integer, nullable=False, default=0)
    has_answered = db.Column(db.Boolean, nullable=False, default=False)
    has_guessed = db.Column(db.Boolean, nullable=False, default=False)
    # False once the player leaves; the row keeps their score
    active = db.Column(db.Boolean, nullable=False, default=True)
    joined_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    version = db.Column(db.Integer, nullable=False)
    __mapper_args__ = {'version_id_col': version}
    room = db.relationship('Room', back_populates='players')

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'name': self.name,
            'is_host': self.is_host,
            'score': self.score,
            'has_answered': self.has_answered,
            'has_guessed': self.has_guessed,
            'active': self.active,
        }


class Question(db.Model):
    __tablename__ = 'question'
    room_code = db.Column(db.String(16), db.ForeignKey('room.code'), primary_key=True)
    round_index = db.Column(db.Integer, primary_key=True)
    prompt = db.Column(db.Text, nullable=False)
    reveal = db.Column(db.Boolean, nullable=False, default=False)
    scored = db.Column(db.Boolean, nullable=False, default=False)
    version = db.Column(db.Integer, nullable=False)
    __mapper_args__ = {'version_id_col': version}
    room = db.relationship('Room', back_populates='questions')

    def to_dict(self):
        return {
            'round_index': self.round_index,
            'round': self.round_index + 1,
            'prompt': self.prompt,
            'reveal': self.reveal,
            'scored': self.scored,
        }


class Answer(db.Model):
    __tablename__ = 'answer'
    __table_args__ = (
        db.UniqueConstraint('room_code', 'round_index', 'author_id', name='uq_answer_author_round'),
    )
    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    room_code = db.Column(db.String(16), db.ForeignKey('room.code'), nullable=False, index=True)
    round_index = db.Column(db.Integer, nullable=False)
    author_id = db.Column(db.String(32), nullable=False)
    payload = db.Column(db.Text, nullable=False)  # obfuscated, see anonparty.obfuscation
    released = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    room = db.relationship('Room', back_populates='answers')
    guesses = db.relationship('Guess', back_populates='answer', cascade='all, delete')

    def to_dict(self):
        return {
            'id': self.id,
            'round_index': self.round_index,
            'author_id': self.author_id,
            'payload': self.payload,
            'released': self.released,
        }


class Guess(db.Model):
    __tablename__ = 'guess'
    __table_args__ = (
        db.UniqueConstraint('answer_id', 'guesser_id', name='uq_guess_guesser_answer'),
    )
    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    room_code = db.Column(db.String(16), db.ForeignKey('room.code'), nullable=False, index=True)
    round_index = db.Column(db.Integer, nullable=False)
    answer_id = db.Column(db.String(32), db.ForeignKey('answer.id'), nullable=False, index=True)
    guesser_id = db.Column(db.String(32), nullable=False)
    guessed_player_id = db.Column(db.String(32), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    room = db.relationship('Room', back_populates='guesses')
    answer = db.relationship('Answer', back_populates='guesses')

    def to_dict(self):
        return {
            'id': self.id,
            'round_index': self.round_index,
            'answer_id': self.answer_id,
            'guesser_id': self.guesser_id,
            'guessed_player_id': self.guessed_player_id,
        }
