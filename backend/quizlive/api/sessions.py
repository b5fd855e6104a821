from flask import Blueprint, current_app, jsonify, request

from quizlive import db
from quizlive.auth import admin_required
from quizlive.errors import InvalidInput, StateConflict
from quizlive.models import ACTIVE, Question, QuizSession, normalize_code
from quizlive.services.quiz import state_machine
from quizlive.services.quiz.fanout import SESSION_CODE_PATTERN, broadcast, get_rooms
from quizlive.services.quiz.sync import current_view, find_session, publish_view

sessions = Blueprint('sessions', __name__)


@sessions.route('', methods=['GET'])
def list_sessions():
    rooms = get_rooms()
    rows = []
    for s in QuizSession.query.order_by(QuizSession.created_at.desc(), QuizSession.id.desc()).all():
        row = s.to_dict()
        row['liveCount'] = rooms.count(s.session_code)
        rows.append(row)
    return jsonify({'success': True, 'data': rows})


@sessions.route('', methods=['POST'])
@admin_required
def create_session():
    data = request.get_json(silent=True) or {}
    code = normalize_code(data.get('sessionCode'))
    title = str(data.get('title') or '').strip()
    if not code or not title:
        raise InvalidInput('Title and session code are required')
    if not SESSION_CODE_PATTERN.match(code):
        raise InvalidInput('Session code must be 3-12 letters or digits')
    if QuizSession.query.filter_by(session_code=code).first():
        raise StateConflict('Session code already exists')
    session = QuizSession(session_code=code, title=title[:128])
    db.session.add(session)
    db.session.commit()
    return jsonify({'success': True, 'data': session.to_dict()}), 201


@sessions.route('/code/<string:code>', methods=['GET'])
def get_session_by_code(code):
    session = find_session(code)
    return jsonify({'success': True, 'data': session.to_dict()})


@sessions.route('/<string:code>/state', methods=['GET'])
def get_session_state(code):
    # Same function the socket sync:state handler uses
    view = current_view(code)
    return jsonify({'success': True, **view.to_dict()})


@sessions.route('/start', methods=['POST'])
@admin_required
def start_session():
    data = request.get_json(silent=True) or {}
    session = find_session(data.get('sessionCode'))
    was_active = session.status == ACTIVE
    state_machine.start(session)
    if not was_active:
        broadcast(session.session_code, 'game:started', {'sessionCode': session.session_code})
    publish_view(session.session_code)
    return jsonify({'success': True, 'data': session.to_dict()})


@sessions.route('/<string:code>/advance', methods=['POST'])
@admin_required
def advance_session(code):
    data = request.get_json(silent=True) or {}
    session = find_session(code)
    state_machine.advance(session, force=bool(data.get('force')))
    publish_view(session.session_code)
    return jsonify({'success': True, 'data': session.to_dict()})


@sessions.route('/<string:code>/status', methods=['PUT'])
@admin_required
def update_status(code):
    data = request.get_json(silent=True) or {}
    if 'status' not in data:
        raise InvalidInput('status is required')
    session = find_session(code)
    state_machine.set_status(session, data.get('status'))
    publish_view(session.session_code)
    return jsonify({'success': True, 'data': session.to_dict()})


@sessions.route('/<string:code>/data', methods=['DELETE'])
@admin_required
def reset_session_data(code):
    session = find_session(code)
    state_machine.reset(session)
    publish_view(session.session_code)
    return jsonify({'success': True, 'message': 'Session data cleared'})


@sessions.route('/code/<string:code>/permanent', methods=['DELETE'])
@admin_required
def delete_session(code):
    session = find_session(code)
    session_code = session.session_code
    state_machine.reset(session)
    for question in Question.query.filter_by(session_code=session_code).all():
        db.session.delete(question)
    db.session.delete(session)
    db.session.commit()
    current_app.logger.info(f"[delete] session={session_code} removed")
    broadcast(session_code, 'game:force_stop', {'sessionCode': session_code})
    return jsonify({'success': True, 'message': 'Session deleted'})
