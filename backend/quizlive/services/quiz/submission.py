"""Answer submission: validate, score once, record, notify.

Liveness comes only from the stored deadline; the client's ``timeLeft`` is
used for the speed bonus after clamping and nothing else. The attempt row
insert and the score increment share one transaction, and the attempt's
unique (participant, question) constraint turns a second submission into a
no-op instead of a second score.
"""

from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from quizlive import db
from quizlive.errors import InvalidInput, ParticipantNotFound, QuestionNotActive, QuestionNotFound
from quizlive.models import ACTIVE, Attempt, Participant, Question, QuizSession, Response
from . import clock, state_machine
from .fanout import broadcast
from .scoring import is_correct_answer, score_delta

ALREADY_ANSWERED = 'Already answered'


@dataclass
class SubmissionResult:
    message: str
    added: int = 0
    already_answered: bool = False

    def to_dict(self) -> dict:
        return {'success': True, 'message': self.message, 'added': self.added}


def coerce_id(value, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f'{field_name} is required')


def _live_session_for(question_id: int, now: float) -> QuizSession:
    session = QuizSession.query.filter_by(current_question_id=question_id).first()
    if session is not None:
        state_machine.catch_up(session, now)
    if (
        session is None
        or session.status != ACTIVE
        or session.current_question_id != question_id
        or not clock.is_question_live(session.question_ends_at, now)
    ):
        raise QuestionNotActive()
    return session


def _record_response(participant: Participant, question: Question, session_code: str,
                     selected_option, is_correct: bool, points: int) -> None:
    """Audit trail only; losing a row here must not affect the score."""
    try:
        db.session.add(Response(
            participant_id=participant.id,
            question_id=question.id,
            session_code=session_code,
            selected_option=None if selected_option is None else str(selected_option),
            is_correct=is_correct,
            points=points,
        ))
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning(
            f"[history-skip] participant={participant.id} question={question.id} error={exc}"
        )


def submit_answer(participant_id, question_id, selected_option, time_left,
                  now: Optional[float] = None) -> SubmissionResult:
    now = clock.now() if now is None else now
    config = current_app.config
    pid = coerce_id(participant_id, 'participantId')
    qid = coerce_id(question_id, 'questionId')

    session = _live_session_for(qid, now)

    question = db.session.get(Question, qid)
    if question is None:
        raise QuestionNotFound()

    participant = db.session.get(Participant, pid)
    if participant is None or participant.session_code != session.session_code:
        raise ParticipantNotFound()

    correct = is_correct_answer(question, selected_option)
    budget = int(config.get('QUESTION_DURATION_SEC', 15))
    added = score_delta(
        correct,
        time_left,
        budget,
        base_points=int(config.get('BASE_POINTS', 10)),
        bonus_points=int(config.get('SPEED_BONUS_POINTS', 10)),
    )

    try:
        db.session.add(Attempt(participant_id=pid, question_id=qid, is_correct=correct, points=added))
        db.session.flush()
        db.session.execute(
            update(Participant)
            .where(Participant.id == pid)
            .values(total_score=Participant.total_score + added)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.info(f"[submit-dup] participant={pid} question={qid}")
        return SubmissionResult(ALREADY_ANSWERED, 0, already_answered=True)

    current_app.logger.info(
        f"[submit] session={session.session_code} participant={pid} question={qid} correct={correct} added={added}"
    )
    _record_response(participant, question, session.session_code, selected_option, correct, added)
    broadcast(session.session_code, 'leaderboard:update')
    return SubmissionResult('Correct' if correct else 'Wrong', added)
