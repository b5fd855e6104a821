from flask import Blueprint, current_app, jsonify, request

from quizlive.services.quiz.leaderboard import leaderboard_rows
from quizlive.services.quiz.participants import game_history, join_session, participant_stats
from quizlive.services.quiz.submission import submit_answer
from quizlive.services.quiz.sync import find_session

participants = Blueprint('participants', __name__)


@participants.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    payload = join_session(
        data.get('name'),
        data.get('sessionCode'),
        data.get('existingParticipantId'),
    )
    message = 'Welcome back!' if 'totalScore' in payload else 'Joined'
    return jsonify({'success': True, 'message': message, 'data': payload})


@participants.route('/submit', methods=['POST'])
def submit():
    data = request.get_json(silent=True) or {}
    result = submit_answer(
        data.get('participantId'),
        data.get('questionId'),
        data.get('selectedOption'),
        data.get('timeLeft'),
    )
    return jsonify(result.to_dict())


@participants.route('/leaderboard/<string:code>', methods=['GET'])
def leaderboard(code):
    session = find_session(code)
    rows = leaderboard_rows(session.session_code, int(current_app.config.get('LEADERBOARD_LIMIT', 50)))
    return jsonify({'success': True, 'count': len(rows), 'data': rows})


@participants.route('/stats/<participant_id>', methods=['GET'])
def stats(participant_id):
    return jsonify({'success': True, 'data': participant_stats(participant_id)})


@participants.route('/history/<participant_id>', methods=['GET'])
def history(participant_id):
    return jsonify({'success': True, 'data': game_history(participant_id)})
