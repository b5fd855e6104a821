"""Error taxonomy shared by HTTP routes and socket handlers.

Routes raise these; ``register_error_handlers`` turns them into
``{"success": false, "message": ...}`` bodies with the matching status.
"""

from flask import jsonify
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException


class QuizError(Exception):
    status_code = 400
    message = 'Request failed'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self):
        return {'success': False, 'message': self.message}


class NotFound(QuizError):
    status_code = 404
    message = 'Not found'


class SessionNotFound(NotFound):
    message = 'Session not found'


class QuestionNotFound(NotFound):
    message = 'Question not found'


class ParticipantNotFound(NotFound):
    message = 'Participant not found'


class InvalidInput(QuizError):
    status_code = 400
    message = 'Invalid input'


class StateConflict(QuizError):
    status_code = 409
    message = 'Session is not in the right state'


class QuestionNotActive(StateConflict):
    status_code = 400
    message = 'Question not active or time up'


class Unauthorized(QuizError):
    status_code = 401
    message = 'Admin passcode required'


class Transient(QuizError):
    status_code = 503
    message = 'Storage temporarily unavailable'


def register_error_handlers(flask_app):
    from quizlive import db

    @flask_app.errorhandler(QuizError)
    def handle_quiz_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(OperationalError)
    def handle_store_unavailable(exc):
        db.session.rollback()
        flask_app.logger.error(f"[store-unavailable] {exc}")
        err = Transient()
        return jsonify(err.to_dict()), err.status_code

    @flask_app.errorhandler(Exception)
    def handle_unexpected(exc):
        # Let Flask render its own 404/405 and friends
        if isinstance(exc, HTTPException):
            return exc
        db.session.rollback()
        flask_app.logger.exception(f"[server-error] {exc}")
        return jsonify({'success': False, 'message': 'Internal server error'}), 500
