"""Document store adapter.

The relational tables behind ``anonparty.models`` are exposed as the
document collections the game core reasons about::

    rooms/{code}
    rooms/{code}/players/{user_id}
    rooms/{code}/questions/{round_index}
    rooms/{code}/answers/{answer_id}
    rooms/{code}/guesses/{guess_id}

Three capabilities live here:

- ``run_transaction`` / ``@transactional``: one atomic multi-document change,
  rolled back and re-run from scratch on an optimistic-concurrency conflict;
- ``get_document`` / ``query_collection``: path-addressed reads returning
  plain dicts;
- ``SnapshotHub``: real-time subscriptions. Rooms touched by a transaction are
  collected while the session flushes and re-published to every subscriber of
  a path under that room once the transaction commits.
"""

from __future__ import annotations

import logging
import threading
from functools import wraps
from typing import Any, Callable

from flask import current_app
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from anonparty import db
from anonparty.exceptions import GameError, NotFound, StoreUnavailable
from anonparty.models import Answer, Guess, Player, Question, Room

logger = logging.getLogger(__name__)

_TOUCHED_KEY = 'anonparty.touched_rooms'
_DEPTH_KEY = 'anonparty.txn_depth'

# collection name -> (model, document key column)
COLLECTIONS = {
    'players': (Player, 'user_id'),
    'questions': (Question, 'round_index'),
    'answers': (Answer, 'id'),
    'guesses': (Guess, 'id'),
}


# ---- touched-room tracking ----

def _room_code_of(obj) -> str | None:
    if isinstance(obj, Room):
        return obj.code
    return getattr(obj, 'room_code', None)


@event.listens_for(Session, 'after_flush')
def _collect_touched_rooms(session, flush_context):
    touched = session.info.setdefault(_TOUCHED_KEY, set())
    for obj in list(session.new) + list(session.dirty) + list(session.deleted):
        code = _room_code_of(obj)
        if code:
            touched.add(code)


def _pop_touched(session) -> set[str]:
    return session.info.pop(_TOUCHED_KEY, set())


# ---- transactions ----

def run_transaction(fn: Callable[..., Any], *args, **kwargs) -> Any:
    """Run ``fn`` inside one store transaction and commit it.

    Conflicts (stale version ids, lock timeouts, serialization failures) roll
    back and re-run ``fn`` from scratch, so ``fn`` must re-read everything it
    depends on. ``GameError`` and ``IntegrityError`` roll back and propagate.
    Nested calls join the outer transaction.
    """
    session = db.session
    depth = session.info.get(_DEPTH_KEY, 0)
    if depth:
        session.info[_DEPTH_KEY] = depth + 1
        try:
            return fn(*args, **kwargs)
        finally:
            session.info[_DEPTH_KEY] = depth

    attempts = max(1, int(current_app.config.get('TRANSACTION_RETRIES', 3)))
    for attempt in range(1, attempts + 1):
        session.info[_DEPTH_KEY] = 1
        try:
            result = fn(*args, **kwargs)
            session.commit()
        except (StaleDataError, OperationalError) as exc:
            session.rollback()
            _pop_touched(session)
            if attempt >= attempts:
                logger.error(f"[txn-failed] {fn.__name__} gave up after {attempt} attempts: {exc}")
                raise StoreUnavailable() from exc
            logger.warning(f"[txn-retry] {fn.__name__} attempt={attempt} conflict: {exc}")
            continue
        except (GameError, IntegrityError):
            session.rollback()
            _pop_touched(session)
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            _pop_touched(session)
            logger.error(f"[txn-failed] {fn.__name__}: {exc}", exc_info=True)
            raise StoreUnavailable() from exc
        finally:
            session.info.pop(_DEPTH_KEY, None)

        hub = current_hub()
        touched = _pop_touched(session)
        if hub is not None and touched:
            hub.publish(touched)
        return result


def transactional(func):
    """Decorator form of ``run_transaction``."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        return run_transaction(func, *args, **kwargs)
    return wrapper


# ---- path-addressed reads ----

def _split(path: str) -> list[str]:
    parts = [p for p in (path or '').strip('/').split('/') if p]
    if not parts or parts[0] != 'rooms':
        raise NotFound(f"Unknown document path: {path}")
    return parts


def _coerce_key(model, key: str):
    if model is Question:
        try:
            return int(key)
        except ValueError:
            raise NotFound(f"Unknown question key: {key}")
    return key


def is_document_path(path: str) -> bool:
    # rooms/{code} and rooms/{code}/{collection}/{id} have an even number of segments
    return len(_split(path)) % 2 == 0


def get_document(path: str) -> dict | None:
    """Read one document, or None when it does not exist."""
    parts = _split(path)
    try:
        if len(parts) == 2:
            room = db.session.get(Room, parts[1])
            return room.to_dict() if room else None
        if len(parts) == 4 and parts[2] in COLLECTIONS:
            model, key_col = COLLECTIONS[parts[2]]
            obj = model.query.filter(
                model.room_code == parts[1],
                getattr(model, key_col) == _coerce_key(model, parts[3]),
            ).first()
            return obj.to_dict() if obj else None
    except SQLAlchemyError as exc:
        raise StoreUnavailable() from exc
    raise NotFound(f"Unknown document path: {path}")


def query_collection(path: str, **filters) -> list[dict]:
    """List a collection with optional equality filters on document fields."""
    parts = _split(path)
    if len(parts) != 3 or parts[2] not in COLLECTIONS:
        raise NotFound(f"Unknown collection path: {path}")
    model, _ = COLLECTIONS[parts[2]]
    query = model.query.filter(model.room_code == parts[1])
    for field, value in filters.items():
        column = getattr(model, field, None)
        if column is None:
            raise NotFound(f"Unknown field {field} on {parts[2]}")
        query = query.filter(column == value)
    if model is Player:
        query = query.order_by(Player.joined_at)
    try:
        return [obj.to_dict() for obj in query.all()]
    except SQLAlchemyError as exc:
        raise StoreUnavailable() from exc


def room_code_of_path(path: str) -> str:
    parts = _split(path)
    return parts[1] if len(parts) > 1 else ''


# ---- subscriptions ----

class Subscription:
    def __init__(self, hub, path, on_snapshot, on_error=None, owner=None, reader=None):
        self.hub = hub
        self.path = path
        self.room_code = room_code_of_path(path)
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.owner = owner
        self.reader = reader
        self.active = True

    def read(self):
        if self.reader is not None:
            return self.reader()
        if is_document_path(self.path):
            return get_document(self.path)
        if get_document(f"rooms/{self.room_code}") is None:
            return None
        return query_collection(self.path)

    def unsubscribe(self):
        self.hub.remove(self)


class SnapshotHub:
    """Registry of snapshot subscriptions keyed by room code.

    ``on_snapshot(snapshot)`` receives the document dict, the list of
    collection documents, or None once the room is gone. When reading the
    snapshot fails with ``StoreUnavailable``, ``on_error(exc)`` is told and the
    read is retried with exponential backoff.
    """

    def __init__(self, retry_base_sec: float = 0.5, max_retries: int = 5,
                 sleep: Callable[[float], None] | None = None,
                 spawn: Callable[..., Any] | None = None):
        self.retry_base_sec = retry_base_sec
        self.max_retries = max_retries
        self._sleep = sleep
        self._spawn = spawn
        self._lock = threading.RLock()
        self._subs: dict[str, list[Subscription]] = {}

    def subscribe(self, path: str, on_snapshot, on_error=None, owner=None,
                  reader=None) -> Callable[[], None]:
        """Register a subscription and deliver the current snapshot.

        ``reader`` replaces the raw document read, for snapshots projected
        per viewer. It must return None once the room is gone.
        """
        sub = Subscription(self, path, on_snapshot, on_error=on_error, owner=owner, reader=reader)
        with self._lock:
            self._subs.setdefault(sub.room_code, []).append(sub)
        self.deliver(sub)
        return sub.unsubscribe

    def remove(self, sub: Subscription) -> None:
        sub.active = False
        with self._lock:
            subs = self._subs.get(sub.room_code, [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._subs.pop(sub.room_code, None)

    def unsubscribe_owner(self, owner) -> int:
        with self._lock:
            doomed = [s for subs in self._subs.values() for s in subs if s.owner == owner]
        for sub in doomed:
            self.remove(sub)
        return len(doomed)

    def subscriptions(self, room_code: str) -> list[Subscription]:
        with self._lock:
            return list(self._subs.get(room_code, []))

    def publish(self, room_codes) -> None:
        for code in sorted(room_codes):
            for sub in self.subscriptions(code):
                self.deliver(sub)

    def deliver(self, sub: Subscription) -> bool:
        if not sub.active:
            return False
        try:
            snapshot = sub.read()
        except StoreUnavailable as exc:
            self._report(sub, exc)
            if self._spawn is not None:
                self._spawn(self._redeliver, sub)
            else:
                self._redeliver(sub)
            return False
        sub.on_snapshot(snapshot)
        if snapshot is None:
            # room deleted: the subscription is finished
            self.remove(sub)
        return True

    def _redeliver(self, sub: Subscription) -> bool:
        for attempt in range(1, self.max_retries + 1):
            if not sub.active:
                return False
            delay = self.retry_base_sec * (2 ** (attempt - 1))
            logger.info(f"[snapshot-retry] path={sub.path} attempt={attempt} delay={delay}s")
            if delay and self._sleep is not None:
                self._sleep(delay)
            try:
                snapshot = sub.read()
            except StoreUnavailable as exc:
                self._report(sub, exc)
                continue
            sub.on_snapshot(snapshot)
            if snapshot is None:
                self.remove(sub)
            return True
        logger.error(f"[snapshot-giveup] path={sub.path} after {self.max_retries} retries")
        return False

    def _report(self, sub, exc):
        if sub.on_error is None:
            return
        try:
            sub.on_error(exc)
        except Exception:
            logger.exception(f"[snapshot-error-handler] path={sub.path}")


def current_hub() -> SnapshotHub | None:
    return current_app.extensions.get('anonparty.hub')
