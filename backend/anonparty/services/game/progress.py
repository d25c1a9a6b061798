"""Round progress predicates.

Pure functions over a room and its live roster; nothing here touches the
store. They are recomputed from the current roster every time a snapshot is
built and are never cached.
"""

from anonparty.models import Phase


def live_players(players):
    return [p for p in players if getattr(p, 'active', True)]


def all_answered(room, players) -> bool:
    live = live_players(players)
    return bool(live) and all(p.has_answered for p in live)


def all_guessed(room, players) -> bool:
    live = live_players(players)
    return bool(live) and all(p.has_guessed for p in live)


def can_start(room, players, min_players=3, max_players=8) -> bool:
    return min_players <= len(live_players(players)) <= max_players


def round_complete(room, players, min_players=3, max_players=8, scored=False) -> bool:
    """Whether the host's advance control for the current phase should be enabled."""
    phase = room.phase
    if phase == Phase.COLLECTING_ANSWERS:
        return all_answered(room, players)
    if phase == Phase.COLLECTING_GUESSES:
        return all_guessed(room, players)
    if phase == Phase.REVIEW_PENDING:
        return True
    if phase == Phase.SCORING:
        return scored
    if phase in (Phase.PRE_START, Phase.ROUND_READY):
        return can_start(room, players, min_players, max_players)
    return False
