"""Room membership and broadcast for session rooms.

One Socket.IO room per session code. ``RoomRegistry`` is a disposable
process-local cache of which sockets sit in which room and which
participant each one represents; it is rebuilt as clients reconnect and is
never a source of truth.
"""

import re
import threading
from typing import Any, Dict, Optional, Tuple

from flask import current_app

SESSION_CODE_PATTERN = re.compile(r'^[A-Z0-9]{3,12}$')
ADMIN_ROOM = 'admin'


def room_name(session_code: str) -> str:
    return str(session_code).strip().upper()


class RoomRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        # sid -> (session_code, participant_id or None)
        self._members: Dict[str, Tuple[str, Optional[int]]] = {}
        # session_code -> {sid: participant_id or None}
        self._rooms: Dict[str, Dict[str, Optional[int]]] = {}

    def join(self, sid: str, session_code: str, participant_id: Optional[int] = None) -> Optional[str]:
        """Put ``sid`` in the session's room. Returns the room it left, if any."""
        code = room_name(session_code)
        with self._lock:
            previous = self._members.get(sid)
            left = None
            if previous and previous[0] != code:
                left = previous[0]
                self._discard(sid, left)
            self._members[sid] = (code, participant_id)
            self._rooms.setdefault(code, {})[sid] = participant_id
        return left

    def leave(self, sid: str) -> Optional[str]:
        """Forget ``sid``; returns the session code it was in."""
        with self._lock:
            previous = self._members.pop(sid, None)
            if not previous:
                return None
            self._discard(sid, previous[0])
            return previous[0]

    def _discard(self, sid: str, code: str) -> None:
        room = self._rooms.get(code)
        if room is None:
            return
        room.pop(sid, None)
        if not room:
            self._rooms.pop(code, None)

    def session_of(self, sid: str) -> Optional[str]:
        with self._lock:
            member = self._members.get(sid)
            return member[0] if member else None

    def count(self, session_code: str) -> int:
        """Distinct participants in the room; several tabs count once."""
        with self._lock:
            room = self._rooms.get(room_name(session_code), {})
            return len({pid for pid in room.values() if pid is not None})

    def connections(self, session_code: str) -> int:
        with self._lock:
            return len(self._rooms.get(room_name(session_code), {}))

    def stats(self) -> Dict[str, Any]:
        """Admin aggregate from a scan of every session-shaped room.

        O(rooms x members); fine at classroom scale.
        """
        with self._lock:
            unique = set()
            sockets = 0
            session_counts = {}
            for code, room in self._rooms.items():
                if not SESSION_CODE_PATTERN.match(code):
                    continue
                pids = {pid for pid in room.values() if pid is not None}
                unique.update(pids)
                sockets += len(room)
                session_counts[code] = len(pids)
        return {'activeUsers': len(unique), 'connections': sockets, 'sessionCounts': session_counts}

    def clear(self) -> None:
        with self._lock:
            self._members.clear()
            self._rooms.clear()


def get_rooms() -> RoomRegistry:
    return current_app.extensions['quiz_rooms']


def broadcast(session_code: str, event: str, payload: Any = None) -> None:
    """Emit to everyone in the session room. Failures are logged, not raised."""
    from quizlive import socketio, SOCKET_NAMESPACE
    room = room_name(session_code)
    try:
        if payload is None:
            socketio.emit(event, to=room, namespace=SOCKET_NAMESPACE)
        else:
            socketio.emit(event, payload, to=room, namespace=SOCKET_NAMESPACE)
    except Exception as exc:
        current_app.logger.warning(f"[broadcast-fail] room={room} event={event} error={exc}")


def publish_room_count(session_code: str) -> None:
    broadcast(session_code, 'session:update', {'count': get_rooms().count(session_code)})


def publish_admin_stats() -> None:
    from quizlive import socketio, SOCKET_NAMESPACE
    try:
        socketio.emit('admin:stats', get_rooms().stats(), to=ADMIN_ROOM, namespace=SOCKET_NAMESPACE)
    except Exception as exc:
        current_app.logger.warning(f"[broadcast-fail] room={ADMIN_ROOM} event=admin:stats error={exc}")
