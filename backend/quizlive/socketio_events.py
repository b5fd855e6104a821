from functools import wraps

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from quizlive import db, socketio, SOCKET_NAMESPACE
from quizlive.auth import check_admin_passcode
from quizlive.errors import InvalidInput, QuizError, Unauthorized
from quizlive.models import Participant, normalize_code
from quizlive.services.quiz.fanout import (
    ADMIN_ROOM, get_rooms, publish_admin_stats, publish_room_count,
)
from quizlive.services.quiz.sync import current_view, find_session


def _guarded(event):
    """Catch everything a handler raises and answer with an `error` event."""
    def decorator(handler):
        @wraps(handler)
        def wrapper(*args):
            try:
                return handler(*args)
            except QuizError as exc:
                current_app.logger.info(f"[socket-error] event={event} sid={request.sid} message={exc.message}")
                emit('error', {'message': exc.message})
            except Exception:
                db.session.rollback()
                current_app.logger.exception(f"[socket-error] event={event} sid={request.sid}")
                emit('error', {'message': 'Internal server error'})
        return wrapper
    return decorator


def _participant_in_session(participant_id, session_code):
    """Weak identity for live counts; unknown ids make the socket an observer."""
    if participant_id in (None, ''):
        return None
    try:
        pid = int(participant_id)
    except (TypeError, ValueError):
        return None
    participant = db.session.get(Participant, pid)
    if participant is None or participant.session_code != session_code:
        return None
    return participant.id


def _leave_current_room(sid):
    code = get_rooms().leave(sid)
    if code:
        leave_room(code)
        publish_room_count(code)
        publish_admin_stats()
    return code


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    code = get_rooms().leave(request.sid)
    if not code:
        return
    current_app.logger.info(f"[socket-leave] sid={request.sid} session={code} disconnected")
    publish_room_count(code)
    publish_admin_stats()


@_guarded('join:session')
def handle_join_session(code=None, participant_id=None):
    session_code = normalize_code(code)
    if not session_code:
        raise InvalidInput('Session code is required')
    session = find_session(session_code)
    pid = _participant_in_session(participant_id, session.session_code)

    rooms = get_rooms()
    left = rooms.join(request.sid, session.session_code, pid)
    if left:
        leave_room(left)
        publish_room_count(left)
    join_room(session.session_code)
    current_app.logger.info(f"[socket-join] sid={request.sid} session={session.session_code} participant={pid}")
    emit('joined', {'room': session.session_code, 'participantId': pid})
    publish_room_count(session.session_code)
    publish_admin_stats()


@_guarded('sync:state')
def handle_sync_state(code=None):
    # Reconnects re-sync from stored state; nothing per-socket is kept
    view = current_view(code)
    emit(view.event, view.payload)


@_guarded('leave:session')
def handle_leave_session(code=None):
    left = _leave_current_room(request.sid)
    emit('left', {'room': left})


@_guarded('join:admin')
def handle_join_admin(passcode=None):
    if not check_admin_passcode(passcode):
        raise Unauthorized()
    join_room(ADMIN_ROOM)
    emit('admin:stats', get_rooms().stats())


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the quiz namespace."""
    socketio.on_event('connect', handle_connect, namespace=SOCKET_NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=SOCKET_NAMESPACE)
    socketio.on_event('join:session', handle_join_session, namespace=SOCKET_NAMESPACE)
    socketio.on_event('sync:state', handle_sync_state, namespace=SOCKET_NAMESPACE)
    socketio.on_event('leave:session', handle_leave_session, namespace=SOCKET_NAMESPACE)
    socketio.on_event('join:admin', handle_join_admin, namespace=SOCKET_NAMESPACE)
