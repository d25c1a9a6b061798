from flask import current_app, request
from flask_login import current_user
from flask_socketio import emit, join_room, leave_room
from sqlalchemy.exc import SQLAlchemyError
from anonparty import socketio
from anonparty.exceptions import GameError, NotFound, StoreUnavailable
from anonparty.services.game import roster
from anonparty.store import COLLECTIONS, current_hub, get_document

NAMESPACE = '/ws'

# sid -> {(room_code, collection): unsubscribe}
_sid_subs = {}


def _get_sid() -> str:
    return request.sid  # type: ignore


def _channel(code):
    return f"room:{code}"


def _path(code, collection):
    return f"rooms/{code}/{collection}" if collection else f"rooms/{code}"


def _viewer_reader(code, collection, user_id):
    """Per-viewer read for collections whose raw documents would leak authorship.

    Answers stay hidden until the round is released and never carry their
    author; guesses are limited to the viewer's own.
    """
    project = {
        'answers': roster.list_revealed_answers,
        'guesses': roster.list_my_guesses,
    }.get(collection)
    if project is None:
        return None

    def read():
        if get_document(f"rooms/{code}") is None:
            return None
        try:
            return project(code, user_id)
        except NotFound:
            # no longer a player here: nothing is visible
            return []
        except SQLAlchemyError as exc:
            raise StoreUnavailable() from exc

    return read


def _sender(sid, code, collection):
    """Build the snapshot and error callbacks for one socket subscription."""
    path = _path(code, collection)

    def on_snapshot(snapshot):
        if snapshot is None:
            socketio.emit('room_gone', {'room_code': code}, to=sid, namespace=NAMESPACE)
            _sid_subs.get(sid, {}).pop((code, collection), None)
            return
        socketio.emit('room_snapshot', {'room_code': code, 'path': path, 'data': snapshot},
                      to=sid, namespace=NAMESPACE)

    def on_error(exc):
        payload = exc.to_dict() if isinstance(exc, GameError) else {'error': 'store_unavailable'}
        payload['path'] = path
        socketio.emit('error', payload, to=sid, namespace=NAMESPACE)

    return on_snapshot, on_error


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    sid = _get_sid()
    _sid_subs.pop(sid, None)
    hub = current_hub()
    if hub is not None:
        hub.unsubscribe_owner(sid)


def handle_subscribe(data):
    """Stream snapshots of a room, or of one of its collections, to this socket."""
    data = data or {}
    code = (data.get('room_code') or '').strip().upper()
    collection = data.get('collection') or None
    if not code:
        emit('error', {'error': 'invalid_payload', 'message': 'room_code is required'})
        return
    if collection is not None and collection not in COLLECTIONS:
        emit('error', {'error': 'invalid_payload', 'message': f'Unknown collection {collection}'})
        return
    if not current_user.is_authenticated:
        emit('error', {'error': 'unauthorized', 'message': 'Sign in first.'})
        return

    try:
        member = get_document(f"rooms/{code}/players/{current_user.id}")
    except GameError as exc:
        emit('error', exc.to_dict())
        return
    if member is None or not member.get('active'):
        emit('error', {'error': 'not_found', 'message': 'You are not a player in this room.'})
        return

    sid = _get_sid()
    subs = _sid_subs.setdefault(sid, {})
    key = (code, collection)
    if key in subs:
        subs.pop(key)()

    join_room(_channel(code))
    emit('subscribed', {'room_code': code, 'path': _path(code, collection)})
    on_snapshot, on_error = _sender(sid, code, collection)
    subs[key] = current_hub().subscribe(
        _path(code, collection), on_snapshot, on_error=on_error, owner=sid,
        reader=_viewer_reader(code, collection, current_user.id),
    )
    current_app.logger.info(f"[ws-subscribe] sid={sid} path={_path(code, collection)}")


def handle_unsubscribe(data):
    data = data or {}
    code = (data.get('room_code') or '').strip().upper()
    if not code:
        emit('error', {'error': 'invalid_payload', 'message': 'room_code is required'})
        return
    subs = _sid_subs.get(_get_sid(), {})
    for key in [k for k in subs if k[0] == code]:
        subs.pop(key)()
    leave_room(_channel(code))
    emit('unsubscribed', {'room_code': code})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('subscribe', handle_subscribe, namespace=namespace)
        socketio.on_event('unsubscribe', handle_unsubscribe, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
