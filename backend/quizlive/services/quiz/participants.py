from typing import List, Optional

from flask import current_app

from quizlive import db
from quizlive.errors import InvalidInput, ParticipantNotFound, StateConflict
from quizlive.models import (
    ACTIVE, WAITING, Participant, Question, Response, generate_join_code,
)
from . import state_machine
from .sync import find_session

CORRECT = 'CORRECT'
WRONG = 'WRONG'
TIMEOUT = 'TIMEOUT'
NO_ATTEMPT = 'No Attempt'


def _existing_participant(existing_participant_id, session_code: str) -> Optional[Participant]:
    if existing_participant_id in (None, ''):
        return None
    try:
        pid = int(existing_participant_id)
    except (TypeError, ValueError):
        return None
    participant = db.session.get(Participant, pid)
    if participant is None or participant.session_code != session_code:
        return None
    return participant


def _join_payload(participant: Participant, session, include_score: bool) -> dict:
    data = {
        'participantId': participant.id,
        'name': participant.name,
        'uniqueCode': participant.unique_code,
        'sessionCode': session.session_code,
        'sessionTitle': session.title or 'Untitled Session',
        'sessionStatus': session.status,
    }
    if include_score:
        data['totalScore'] = participant.total_score
    return data


def join_session(name, session_code, existing_participant_id=None) -> dict:
    """Register a player, or hand back the existing record on rejoin."""
    session = find_session(session_code)
    if session.status not in (WAITING, ACTIVE):
        raise StateConflict('Session closed')

    existing = _existing_participant(existing_participant_id, session.session_code)
    if existing is not None:
        current_app.logger.info(f"[join] session={session.session_code} participant={existing.id} rejoined")
        return _join_payload(existing, session, include_score=True)

    clean_name = str(name or '').strip()
    if len(clean_name) < int(current_app.config.get('MIN_NAME_LENGTH', 2)):
        raise InvalidInput('Invalid name')

    participant = Participant(
        session_code=session.session_code,
        name=clean_name[:64],
        unique_code=generate_join_code(int(current_app.config.get('JOIN_CODE_LENGTH', 6))),
    )
    db.session.add(participant)
    db.session.commit()
    current_app.logger.info(f"[join] session={session.session_code} participant={participant.id} name={participant.name}")
    return _join_payload(participant, session, include_score=False)


def _get_participant(participant_id) -> Participant:
    try:
        pid = int(participant_id)
    except (TypeError, ValueError):
        raise ParticipantNotFound()
    participant = db.session.get(Participant, pid)
    if participant is None:
        raise ParticipantNotFound()
    return participant


def participant_stats(participant_id) -> dict:
    participant = _get_participant(participant_id)
    total = Question.query.filter_by(session_code=participant.session_code).count()
    attempted = len(participant.attempted_question_ids)
    correct = len(participant.correct_question_ids)
    return {
        'correct': correct,
        'wrong': attempted - correct,
        'timeout': max(0, total - attempted),
        'totalScore': participant.total_score,
    }


def game_history(participant_id) -> List[dict]:
    """Per-question review in quiz order.

    Status comes from the attempt rows; the selected text comes from the
    audit trail, which may be missing for a scored attempt.
    """
    participant = _get_participant(participant_id)
    attempts = {a.question_id: a for a in participant.attempts}
    responses = {
        r.question_id: r
        for r in Response.query.filter_by(participant_id=participant.id).order_by(Response.id.asc())
    }
    history = []
    for question in state_machine.ordered_questions(participant.session_code):
        correct = question.correct_option
        attempt = attempts.get(question.id)
        if attempt is None:
            status, selected = TIMEOUT, NO_ATTEMPT
        else:
            status = CORRECT if attempt.is_correct else WRONG
            response = responses.get(question.id)
            selected = response.selected_option if response is not None else None
        history.append({
            'questionId': question.id,
            'questionText': question.question_text,
            'correctAnswer': correct.text if correct is not None else 'N/A',
            'userSelected': selected,
            'status': status,
        })
    return history
