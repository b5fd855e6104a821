"""What should a client see right now?

``current_view`` is the only implementation of that question. The socket
``sync:state`` handler, the REST state route and the post-transition
broadcasts all go through it.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from flask import current_app

from quizlive.errors import SessionNotFound
from quizlive.models import QuizSession, normalize_code
from . import clock, state_machine
from .fanout import broadcast
from .leaderboard import rank_entries

VIEW_IDLE = 'idle'
VIEW_ACTIVE = 'active-question'
VIEW_BREAK = 'break-leaderboard'
VIEW_OVER = 'game-over'

_EVENTS = {
    VIEW_IDLE: 'sync:idle',
    VIEW_ACTIVE: 'game:question',
    VIEW_BREAK: 'game:ranks',
    VIEW_OVER: 'game:over',
}


@dataclass
class SessionView:
    kind: str
    payload: Any = field(default_factory=dict)

    @property
    def event(self) -> str:
        return _EVENTS[self.kind]

    def to_dict(self) -> dict:
        return {'view': self.kind, 'event': self.event, 'payload': self.payload}


def find_session(session_code) -> QuizSession:
    code = normalize_code(session_code)
    session = QuizSession.query.filter_by(session_code=code).first() if code else None
    if not session:
        raise SessionNotFound()
    return session


def view_for(session: QuizSession, now: float) -> SessionView:
    config = current_app.config
    current = state_machine.phase(session, now)

    if current == state_machine.IDLE:
        return SessionView(VIEW_IDLE, {})

    if current == state_machine.OVER:
        ranks = rank_entries(session.session_code)
        winners = ranks[: int(config.get('WINNERS_COUNT', 3))]
        return SessionView(VIEW_OVER, {'winners': winners, 'leaderboard': ranks})

    if current == state_machine.LIVE:
        question = session.current_question
        if question is not None:
            qnum, total = state_machine.question_number(session.session_code, question.id)
            return SessionView(VIEW_ACTIVE, {
                'qNum': qnum,
                'total': total,
                'time': clock.remaining_seconds(session.question_ends_at, now),
                'question': question.public_dict(),
            })
        # Pointer to a deleted question: nothing to answer, show the board
        current_app.logger.warning(
            f"[sync] session={session.session_code} current question {session.current_question_id} missing"
        )

    return SessionView(VIEW_BREAK, rank_entries(session.session_code, int(config.get('LEADERBOARD_BREAK_SIZE', 10))))


def current_view(session_code, now: Optional[float] = None) -> SessionView:
    """Resolve the view for ``session_code`` at ``now``.

    Raises :class:`SessionNotFound` for unknown codes.
    """
    now = clock.now() if now is None else now
    session = find_session(session_code)
    state_machine.catch_up(session, now)
    return view_for(session, now)


def publish_view(session_code, now: Optional[float] = None) -> SessionView:
    """Push the current view to everyone in the session room."""
    view = current_view(session_code, now)
    broadcast(session_code, view.event, view.payload)
    return view
