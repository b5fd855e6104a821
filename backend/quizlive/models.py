from datetime import datetime, timezone
import random
import string

from quizlive import db

WAITING = 'WAITING'
ACTIVE = 'ACTIVE'
FINISHED = 'FINISHED'
STATUSES = (WAITING, ACTIVE, FINISHED)


def _utcnow():
    return datetime.now(timezone.utc)


def normalize_code(code) -> str:
    """Session codes are compared upper-case everywhere."""
    return str(code or '').strip().upper()


def generate_join_code(length=6):
    """Short code shown to a participant; display only, not an identity."""
    return ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))


class QuizSession(db.Model):
    __tablename__ = 'quiz_session'
    id = db.Column(db.Integer, primary_key=True)
    session_code = db.Column(db.String(12), unique=True, nullable=False, index=True)
    title = db.Column(db.String(128), nullable=False, default='Untitled Session')
    status = db.Column(db.String(16), nullable=False, default=WAITING)
    current_question_id = db.Column(
        db.Integer,
        db.ForeignKey('question.id', name='fk_quiz_session_current_question_id'),
        nullable=True,
    )
    # Epoch seconds; set and cleared together with current_question_id
    question_ends_at = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)

    @property
    def current_question(self):
        if self.current_question_id:
            return db.session.get(Question, self.current_question_id)
        return None

    def to_dict(self):
        return {
            'id': self.id,
            'sessionCode': self.session_code,
            'title': self.title,
            'status': self.status,
            'currentQuestionId': self.current_question_id,
            'questionEndsAt': self.question_ends_at,
        }


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    session_code = db.Column(db.String(12), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    question_text = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    options = db.relationship(
        'QuestionOption',
        backref='question',
        order_by='QuestionOption.position',
        cascade='all, delete-orphan',
    )

    @property
    def correct_option(self):
        # Creation enforces exactly one; fall back to the first flagged one
        for option in self.options:
            if option.is_correct:
                return option
        return None

    def public_dict(self):
        """Shape sent to players: option text only, never correctness."""
        return {
            '_id': self.id,
            'questionText': self.question_text,
            'options': [{'text': o.text} for o in self.options],
        }

    def to_dict(self):
        return {
            '_id': self.id,
            'sessionId': self.session_code,
            'order': self.position,
            'questionText': self.question_text,
            'options': [{'text': o.text, 'isCorrect': o.is_correct} for o in self.options],
        }


class QuestionOption(db.Model):
    __tablename__ = 'question_option'
    id = db.Column(db.Integer, primary_key=True)
    question_id = db.Column(db.Integer, db.ForeignKey('question.id'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    text = db.Column(db.String(512), nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)


class Participant(db.Model):
    __tablename__ = 'participant'
    id = db.Column(db.Integer, primary_key=True)
    session_code = db.Column(db.String(12), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    unique_code = db.Column(db.String(16), nullable=False)
    total_score = db.Column(db.Integer, nullable=False, default=0)
    joined_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    attempts = db.relationship('Attempt', backref='participant', lazy='dynamic')

    @property
    def attempted_question_ids(self):
        return {a.question_id for a in self.attempts}

    @property
    def correct_question_ids(self):
        return {a.question_id for a in self.attempts if a.is_correct}

    def to_dict(self):
        return {
            'participantId': self.id,
            'name': self.name,
            'uniqueCode': self.unique_code,
            'sessionCode': self.session_code,
            'totalScore': self.total_score,
        }


class Attempt(db.Model):
    """One row per (participant, question); the unique constraint is what
    makes scoring at-most-once."""
    __tablename__ = 'attempt'
    __table_args__ = (
        db.UniqueConstraint('participant_id', 'question_id', name='uq_attempt_participant_question'),
    )
    id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(db.Integer, db.ForeignKey('participant.id'), nullable=False, index=True)
    question_id = db.Column(db.Integer, nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    points = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)


class Response(db.Model):
    __tablename__ = 'response'
    id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(db.Integer, nullable=False, index=True)
    question_id = db.Column(db.Integer, nullable=False)
    session_code = db.Column(db.String(12), nullable=False, index=True)
    selected_option = db.Column(db.String(512), nullable=True)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    points = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
