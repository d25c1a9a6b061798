"""Game errors.

Every failure the room/round core can report is a ``GameError`` subclass.
Transport layers (HTTP blueprints, Socket.IO handlers) catch ``GameError``
and turn it into a non-fatal notice for the player.
"""


class GameError(Exception):
    """Base class for all game errors."""
    code = 'game_error'
    status_code = 400

    def __init__(self, message=None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.code, 'message': self.message}


class NotFound(GameError):
    """Room or document not found."""
    code = 'not_found'
    status_code = 404


class Forbidden(GameError):
    """You are not allowed to do that."""
    code = 'forbidden'
    status_code = 403


class Full(GameError):
    """The room is full."""
    code = 'room_full'
    status_code = 409


class AlreadyStarted(GameError):
    """The game has already started in this room."""
    code = 'already_started'
    status_code = 409


class InvalidPhase(GameError):
    """That action is not available right now."""
    code = 'invalid_phase'
    status_code = 409


class NotEnoughPlayers(GameError):
    """Not enough players to start."""
    code = 'not_enough_players'
    status_code = 409


class DuplicateSubmission(GameError):
    """You already submitted that."""
    code = 'duplicate_submission'
    status_code = 409


class InvalidTarget(GameError):
    """Invalid guess target."""
    code = 'invalid_target'
    status_code = 400


class CreationError(GameError):
    """Could not create the room, please try again."""
    code = 'creation_failed'
    status_code = 503


class StoreUnavailable(GameError):
    """The game server is unavailable, please try again."""
    code = 'store_unavailable'
    status_code = 503


class InvalidAnswer(GameError):
    """Answers must be non-empty and not too long."""
    code = 'invalid_answer'
    status_code = 400
