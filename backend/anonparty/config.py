import os
from dataclasses import dataclass


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///anonparty.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173').split(',') if o.strip()]
    # Base URL used when building share links
    PUBLIC_BASE_URL = os.environ.get('PUBLIC_BASE_URL', 'http://localhost:5173')
    # Room rules
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '8'))
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '3'))
    TOTAL_ROUNDS = int(os.environ.get('TOTAL_ROUNDS', '10'))
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    MAX_ANSWER_LENGTH = int(os.environ.get('MAX_ANSWER_LENGTH', '500'))
    MAX_NAME_LENGTH = int(os.environ.get('MAX_NAME_LENGTH', '24'))
    # Store behaviour
    TRANSACTION_RETRIES = int(os.environ.get('TRANSACTION_RETRIES', '3'))
    ROOM_CODE_ATTEMPTS = int(os.environ.get('ROOM_CODE_ATTEMPTS', '16'))
    # Snapshot redelivery backoff (seconds); attempts are capped
    SUBSCRIPTION_RETRY_BASE_SEC = float(os.environ.get('SUBSCRIPTION_RETRY_BASE_SEC', '0.5'))
    SUBSCRIPTION_MAX_RETRIES = int(os.environ.get('SUBSCRIPTION_MAX_RETRIES', '5'))


@dataclass(frozen=True)
class GameRules:
    """Game constants frozen at startup from the app config."""

    max_players: int = 8
    min_players: int = 3
    total_rounds: int = 10
    room_code_length: int = 6
    max_answer_length: int = 500
    max_name_length: int = 24
    room_code_attempts: int = 16

    @classmethod
    def from_config(cls, config) -> 'GameRules':
        return cls(
            max_players=int(config.get('MAX_PLAYERS', cls.max_players)),
            min_players=int(config.get('MIN_PLAYERS', cls.min_players)),
            total_rounds=int(config.get('TOTAL_ROUNDS', cls.total_rounds)),
            room_code_length=int(config.get('ROOM_CODE_LENGTH', cls.room_code_length)),
            max_answer_length=int(config.get('MAX_ANSWER_LENGTH', cls.max_answer_length)),
            max_name_length=int(config.get('MAX_NAME_LENGTH', cls.max_name_length)),
            room_code_attempts=int(config.get('ROOM_CODE_ATTEMPTS', cls.room_code_attempts)),
        )


def current_rules() -> GameRules:
    from flask import current_app
    return current_app.extensions.get('anonparty.rules') or GameRules.from_config(current_app.config)
