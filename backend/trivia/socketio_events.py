from flask import current_app, request
from flask_socketio import emit

from trivia import socketio
from trivia.services.quiz import SocketIOChannel, list_entries

NAMESPACE = '/ws'


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _broadcaster():
    return current_app.extensions['leaderboard_broadcaster']


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(*_args):
    # Deregister only this socket; other subscribers keep receiving pushes
    if _broadcaster().unsubscribe(_get_sid()):
        current_app.logger.info(f"[ws-unsubscribe] sid={_get_sid()} reason=disconnect")


def handle_subscribe_leaderboard(data=None):
    sid = _get_sid()
    _broadcaster().subscribe(SocketIOChannel(sid, namespace=request.namespace), handle=sid)
    current_app.logger.info(f"[ws-subscribe] sid={sid}")
    limit = int(current_app.config.get('LEADERBOARD_LIMIT', 20))
    emit('leaderboard_update', {'entries': list_entries(limit)})


def handle_unsubscribe_leaderboard(data=None):
    removed = _broadcaster().unsubscribe(_get_sid())
    emit('unsubscribed', {'removed': removed})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the '/ws' namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('subscribe_leaderboard', handle_subscribe_leaderboard, namespace=NAMESPACE)
    socketio.on_event('unsubscribe_leaderboard', handle_unsubscribe_leaderboard, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
