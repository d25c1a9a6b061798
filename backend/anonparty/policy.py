"""Authorization rules for room operations.

All "who may do this" checks are collected here so they can move next to the
store (access-control rules or a mediating service) without changing the
service signatures. They run in the application process on behalf of the
caller: a client with direct store access bypasses them.
"""

from anonparty.exceptions import Forbidden, NotFound
from anonparty.models import Player


def require_member(room, user_id) -> Player:
    player = next((p for p in room.players if p.user_id == user_id), None)
    if player is None:
        raise NotFound('You are not a player in this room.')
    return player


def require_host(room, user_id) -> Player:
    """Host-only transitions. Raised before any write, so a non-host call leaves state untouched."""
    player = require_member(room, user_id)
    if room.host_id != user_id or not player.is_host:
        raise Forbidden('Only the host can do that.')
    return player

