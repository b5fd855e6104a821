from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import func

from quizlive import db
from quizlive.auth import admin_required
from quizlive.errors import InvalidInput, QuestionNotFound, StateConflict
from quizlive.models import ACTIVE, Question, QuestionOption, QuizSession, normalize_code
from quizlive.services.quiz.state_machine import ordered_questions
from quizlive.services.quiz.sync import find_session

questions = Blueprint('questions', __name__)


def _parse_question(data):
    """Validate question text and options.

    A question needs 2+ non-empty options and exactly one flagged correct,
    otherwise scoring would be ambiguous.
    """
    text = str(data.get('questionText') or '').strip()
    if not text:
        raise InvalidInput('Question text is required')
    raw_options = data.get('options')
    if not isinstance(raw_options, list) or len(raw_options) < 2:
        raise InvalidInput('At least two options are required')
    options = []
    for idx, raw in enumerate(raw_options):
        if not isinstance(raw, dict):
            raise InvalidInput('Options must be objects with text and isCorrect')
        option_text = str(raw.get('text') or '').strip()
        if not option_text:
            raise InvalidInput('Option text cannot be empty')
        options.append(QuestionOption(position=idx, text=option_text, is_correct=bool(raw.get('isCorrect'))))
    flagged = sum(1 for o in options if o.is_correct)
    if flagged != 1:
        raise InvalidInput('Exactly one option must be marked correct')
    return text, options


def _get_question(question_id) -> Question:
    question = db.session.get(Question, question_id)
    if question is None:
        raise QuestionNotFound()
    return question


def _is_current(question: Question) -> bool:
    return QuizSession.query.filter_by(current_question_id=question.id, status=ACTIVE).first() is not None


@questions.route('/session/<string:code>', methods=['GET'])
@admin_required
def list_questions(code):
    session = find_session(code)
    return jsonify({'success': True, 'data': [q.to_dict() for q in ordered_questions(session.session_code)]})


@questions.route('', methods=['POST'])
@admin_required
def create_question():
    data = request.get_json(silent=True) or {}
    session = find_session(data.get('sessionId') or data.get('sessionCode'))
    text, options = _parse_question(data)
    last = db.session.query(func.max(Question.position)).filter(Question.session_code == session.session_code).scalar()
    question = Question(
        session_code=session.session_code,
        position=0 if last is None else last + 1,
        question_text=text,
    )
    question.options = options
    db.session.add(question)
    db.session.commit()
    return jsonify({'success': True, 'data': question.to_dict()}), 201


@questions.route('/<int:question_id>', methods=['PUT'])
@admin_required
def update_question(question_id):
    question = _get_question(question_id)
    data = request.get_json(silent=True) or {}
    text, options = _parse_question(data)
    if _is_current(question):
        # Scoring for an in-flight question follows whatever is saved now
        current_app.logger.warning(f"[question-edit] question={question.id} edited while live in {question.session_code}")
    question.question_text = text
    question.options = options
    db.session.add(question)
    db.session.commit()
    return jsonify({'success': True, 'data': question.to_dict()})


@questions.route('/<int:question_id>', methods=['DELETE'])
@admin_required
def delete_question(question_id):
    question = _get_question(question_id)
    if QuizSession.query.filter_by(current_question_id=question.id).first():
        raise StateConflict('Cannot delete the current question of a session')
    db.session.delete(question)
    db.session.commit()
    return jsonify({'success': True, 'message': 'Question deleted'})


@questions.route('/reorder/all', methods=['PUT'])
@admin_required
def reorder_question():
    data = request.get_json(silent=True) or {}
    direction = str(data.get('direction') or '').lower()
    if direction not in ('up', 'down'):
        raise InvalidInput("direction must be 'up' or 'down'")
    try:
        question = _get_question(int(data.get('questionId')))
    except (TypeError, ValueError):
        raise InvalidInput('questionId is required')

    session = find_session(question.session_code)
    if session.status == ACTIVE:
        # Ordering drives advance and qNum for the running game
        raise StateConflict('Cannot reorder questions while the session is running')

    siblings = ordered_questions(normalize_code(question.session_code))
    idx = next(i for i, q in enumerate(siblings) if q.id == question.id)
    swap_idx = idx - 1 if direction == 'up' else idx + 1
    if 0 <= swap_idx < len(siblings):
        siblings[idx], siblings[swap_idx] = siblings[swap_idx], siblings[idx]
        # Renumber so positions stay dense and unique
        for position, q in enumerate(siblings):
            q.position = position
            db.session.add(q)
        db.session.commit()
    return jsonify({'success': True, 'data': [q.to_dict() for q in siblings]})
