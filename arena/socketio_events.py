from functools import wraps

from flask import current_app, request
from flask_login import current_user
from flask_socketio import emit

from arena import socketio
from arena.errors import ArenaError, InvalidParameter
from arena.services.container import get_services


def _identity() -> str:
    return get_services().registry.identity_of(request.sid)


def _acked(handler):
    """Ack-style events: errors go back in the ack as ``{success: False, error}``."""
    @wraps(handler)
    def wrapper(*args):
        try:
            return handler(*args)
        except ArenaError as exc:
            current_app.logger.info(f"[ws-error] event={request.event['message']} sid={request.sid} error={exc.message}")
            return {'success': False, 'error': exc.message}
    return wrapper


def _reported(handler):
    """Fire-and-forget events: errors go to the calling connection only."""
    @wraps(handler)
    def wrapper(*args):
        try:
            handler(*args)
        except ArenaError as exc:
            current_app.logger.info(f"[ws-error] event={request.event['message']} sid={request.sid} error={exc.message}")
            emit('error', {'event': request.event['message'], 'message': exc.message})
    return wrapper


def handle_connect(auth=None):
    if not current_user.is_authenticated:
        return False
    services = get_services()
    services.registry.register(request.sid, current_user.username)
    services.ensure_sweeper()


def handle_disconnect(reason=None):
    get_services().membership.disconnect(request.sid)


@_acked
def create_room(opts=None):
    if opts is None:
        opts = {}
    if not isinstance(opts, dict):
        raise InvalidParameter('createRoom options must be an object')
    services = get_services()
    allow = opts.get('allowUsername')
    if allow is None:
        allow = opts.get('allow')
        if isinstance(allow, dict):
            allow = allow.get('username')
    room = services.create_room(
        _identity(),
        opts.get('difficulty') or 'easy',
        opts.get('durationSec') or services.store.allowed_durations[0],
        allow_username=allow,
        mode=opts.get('mode') or 'coding',
    )
    return {'success': True, 'roomCode': room.code}


@_acked
def join_room(code=None):
    return get_services().membership.join(code, _identity(), request.sid)


@_reported
def leave_room(code=None):
    get_services().membership.leave(code, _identity(), request.sid)


@_reported
def update_score(code=None, score=None):
    get_services().engine.sync_score(code, _identity(), score)


@_reported
def finish(code=None):
    get_services().engine.finish(code, _identity())


@_reported
def trivia_done(code=None):
    get_services().membership.acknowledge(code, _identity(), request.sid)


@_acked
def invite_friend(code=None, username=None):
    delivered = get_services().invite(code, _identity(), username)
    return {'success': True, 'delivered': delivered}


@_reported
def dismiss_invitation(code=None):
    get_services().notifications.dismiss(_identity(), str(code or '').upper())


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('createRoom', create_room, namespace=namespace)
    socketio.on_event('joinRoom', join_room, namespace=namespace)
    socketio.on_event('leaveRoom', leave_room, namespace=namespace)
    socketio.on_event('updateScore', update_score, namespace=namespace)
    socketio.on_event('finish', finish, namespace=namespace)
    socketio.on_event('triviaDone', trivia_done, namespace=namespace)
    socketio.on_event('inviteFriend', invite_friend, namespace=namespace)
    socketio.on_event('dismissInvitation', dismiss_invitation, namespace=namespace)
