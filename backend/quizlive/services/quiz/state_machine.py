"""Session lifecycle: WAITING -> ACTIVE -> FINISHED.

Within ACTIVE the per-question phase is derived, never stored: a question
is live while ``now < question_ends_at`` and the session sits in a break
(leaderboard) once the deadline passes, until an admin advances it.
Nothing here schedules timers; every read path re-derives liveness from the
stored deadline through :func:`phase`.

Transitions are written with a conditional UPDATE keyed on the state the
caller last saw, so two admins (or two lazy catch-ups) racing on the same
session apply one transition, not two.
"""

from typing import List, Optional, Tuple

from flask import current_app
from sqlalchemy import update

from quizlive import db
from quizlive.errors import InvalidInput, StateConflict
from quizlive.models import (
    ACTIVE, FINISHED, WAITING, STATUSES,
    Attempt, Participant, Question, QuizSession, Response,
)
from . import clock

IDLE = 'idle'
LIVE = 'live'
BREAK = 'break'
OVER = 'over'

# Admin "stop" from the dashboard
COMPLETED = 'COMPLETED'


def normalize_status(value) -> str:
    status = str(value or '').strip().upper()
    if status == COMPLETED:
        return FINISHED
    if status not in STATUSES:
        raise InvalidInput(f"Unknown status '{value}'")
    return status


def question_duration() -> int:
    return int(current_app.config.get('QUESTION_DURATION_SEC', 15))


def ordered_questions(session_code: str) -> List[Question]:
    return Question.query.filter_by(session_code=session_code).order_by(
        Question.position.asc(), Question.id.asc()
    ).all()


def question_number(session_code: str, question_id: int) -> Tuple[int, int]:
    """1-based position of ``question_id`` and the session's question count."""
    ids = [q.id for q in ordered_questions(session_code)]
    qnum = ids.index(question_id) + 1 if question_id in ids else 0
    return qnum, len(ids)


def phase(session: QuizSession, now: float) -> str:
    """What every observer should see, from stored state and ``now`` alone."""
    if session.status == FINISHED:
        return OVER
    if session.status == WAITING:
        return IDLE
    if session.current_question_id and clock.is_question_live(session.question_ends_at, now):
        return LIVE
    return BREAK


def _transition(session: QuizSession, **values) -> bool:
    """Apply ``values`` only if the session still holds the state we read."""
    if session.current_question_id is None:
        current_matches = QuizSession.current_question_id.is_(None)
    else:
        current_matches = QuizSession.current_question_id == session.current_question_id
    stmt = (
        update(QuizSession)
        .where(
            QuizSession.id == session.id,
            QuizSession.status == session.status,
            current_matches,
        )
        .values(**values)
        .execution_options(synchronize_session='fetch')
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        db.session.rollback()
        db.session.refresh(session)
        return False
    db.session.commit()
    return True


def _armed(question: Question, starts_at: float) -> dict:
    return {
        'status': ACTIVE,
        'current_question_id': question.id,
        'question_ends_at': clock.deadline_after(starts_at, question_duration()),
    }


def _finished() -> dict:
    return {'status': FINISHED, 'current_question_id': None, 'question_ends_at': None}


def _next_question(session: QuizSession) -> Optional[Question]:
    questions = ordered_questions(session.session_code)
    if session.current_question_id is None:
        return questions[0] if questions else None
    ids = [q.id for q in questions]
    if session.current_question_id not in ids:
        return None
    idx = ids.index(session.current_question_id) + 1
    return questions[idx] if idx < len(questions) else None


def start(session: QuizSession, now: Optional[float] = None) -> QuizSession:
    """Open the first question of a waiting session."""
    now = clock.now() if now is None else now
    if session.status == ACTIVE:
        # Idempotent start: already started
        return session
    if session.status == FINISHED:
        raise StateConflict('Session already finished; reset it to play again')
    questions = ordered_questions(session.session_code)
    if not questions:
        raise StateConflict('Session has no questions')
    if not _transition(session, **_armed(questions[0], now)):
        return session
    current_app.logger.info(
        f"[start] session={session.session_code} question={session.current_question_id} ends_at={session.question_ends_at}"
    )
    return session


def advance(session: QuizSession, now: Optional[float] = None, force: bool = False) -> QuizSession:
    """Arm the next question, or finish when none remain.

    Advancing while the current question is still live needs ``force``.
    """
    now = clock.now() if now is None else now
    if session.status == FINISHED:
        return session
    if session.status != ACTIVE:
        raise StateConflict('Session is not active')
    if phase(session, now) == LIVE and not force:
        raise StateConflict('Current question is still running')

    prev_question = session.current_question_id
    next_question = _next_question(session)
    values = _armed(next_question, now) if next_question else _finished()
    if not _transition(session, **values):
        raise StateConflict('Session changed while advancing; retry')
    if next_question:
        current_app.logger.info(
            f"[advance] session={session.session_code} question {prev_question} -> {next_question.id}"
        )
    else:
        current_app.logger.info(f"[finish] session={session.session_code} no questions left after {prev_question}")
    return session


def finish(session: QuizSession) -> QuizSession:
    if session.status == FINISHED:
        return session
    if _transition(session, **_finished()):
        current_app.logger.info(f"[finish] session={session.session_code} stopped by admin")
    return session


def reopen(session: QuizSession) -> QuizSession:
    """Back to the lobby without wiping players or scores.

    FINISHED is terminal; only :func:`reset` leaves it.
    """
    if session.status == WAITING:
        return session
    if session.status == FINISHED:
        raise StateConflict('Session already finished; reset it to play again')
    _transition(session, status=WAITING, current_question_id=None, question_ends_at=None)
    return session


def set_status(session: QuizSession, status, now: Optional[float] = None) -> QuizSession:
    """Admin status change; ``COMPLETED`` is stored as FINISHED."""
    target = normalize_status(status)
    if target == ACTIVE:
        return start(session, now)
    if target == FINISHED:
        return finish(session)
    return reopen(session)


def reset(session: QuizSession) -> QuizSession:
    """Admin data wipe: lobby state, no participants, no history."""
    code = session.session_code
    participant_ids = [pid for (pid,) in db.session.query(Participant.id).filter(Participant.session_code == code)]
    if participant_ids:
        Attempt.query.filter(Attempt.participant_id.in_(participant_ids)).delete(synchronize_session=False)
    Response.query.filter_by(session_code=code).delete(synchronize_session=False)
    Participant.query.filter_by(session_code=code).delete(synchronize_session=False)
    session.status = WAITING
    session.current_question_id = None
    session.question_ends_at = None
    db.session.add(session)
    db.session.commit()
    current_app.logger.info(f"[reset] session={code} wiped {len(participant_ids)} participants")
    return session


def catch_up(session: QuizSession, now: Optional[float] = None) -> bool:
    """Lazily auto-advance sessions whose break has run out.

    Only active when ``AUTO_ADVANCE`` is configured; admin pacing is the
    default. New deadlines are anchored to the previous one so every reader
    computes the same schedule. Returns True if the session moved.
    """
    if not current_app.config.get('AUTO_ADVANCE'):
        return False
    now = clock.now() if now is None else now
    break_sec = int(current_app.config.get('BREAK_DURATION_SEC', 10))
    moved = False
    while session.status == ACTIVE and session.question_ends_at is not None:
        break_ends_at = session.question_ends_at + break_sec
        if now < break_ends_at:
            break
        next_question = _next_question(session)
        values = _armed(next_question, break_ends_at) if next_question else _finished()
        # A lost race means another reader already advanced; re-check
        if _transition(session, **values):
            moved = True
    if moved:
        current_app.logger.info(
            f"[auto-advance] session={session.session_code} status={session.status} question={session.current_question_id}"
        )
    return moved
