import os
import sys
from types import SimpleNamespace

import pytest

# Ensure the backend root (containing the `quizlive` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizlive import create_app, db, socketio, SOCKET_NAMESPACE
from quizlive.services.quiz import clock

ADMIN_PASSCODE = 'test-admin'
START_TIME = 1_700_000_000.0

QUESTIONS = [
    ('Capital of France?', ['Paris', 'Lyon', 'Nice'], 0),
    ('2 + 2 = ?', ['3', '4'], 1),
    ('Largest planet?', ['Mars', 'Jupiter', 'Venus'], 1),
]


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:3000']
    LOG_LEVEL = 'INFO'
    ADMIN_PASSCODE = ADMIN_PASSCODE
    QUESTION_DURATION_SEC = 15
    BASE_POINTS = 10
    SPEED_BONUS_POINTS = 10
    LEADERBOARD_BREAK_SIZE = 10
    LEADERBOARD_LIMIT = 50
    WINNERS_COUNT = 3
    AUTO_ADVANCE = False
    BREAK_DURATION_SEC = 10
    MIN_NAME_LENGTH = 2
    JOIN_CODE_LENGTH = 6


class FrozenClock:
    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def tick(self, seconds):
        self.current += seconds


@pytest.fixture(autouse=True)
def frozen_clock(monkeypatch):
    fake = FrozenClock(START_TIME)
    monkeypatch.setattr(clock, 'now', fake)
    return fake


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import quizlive.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def admin_headers():
    return {'admin-passcode': ADMIN_PASSCODE}


@pytest.fixture()
def sio_factory(flask_app):
    created = []

    def _connect():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace=SOCKET_NAMESPACE,
        )
        # Flush the connect greeting
        test_client.get_received(SOCKET_NAMESPACE)
        created.append(test_client)
        return test_client

    yield _connect
    for test_client in created:
        try:
            if test_client.is_connected(SOCKET_NAMESPACE):
                test_client.disconnect(namespace=SOCKET_NAMESPACE)
        except Exception:
            pass


@pytest.fixture()
def sio_client(sio_factory):
    return sio_factory()


@pytest.fixture()
def quiz_factory(client, admin_headers):
    def _make(code='QUIZ1', questions=QUESTIONS, title='Demo Quiz'):
        res = client.post('/api/sessions', json={'title': title, 'sessionCode': code}, headers=admin_headers)
        assert res.status_code == 201, res.get_json()
        ids = []
        for text, options, correct in questions:
            res = client.post('/api/questions', json={
                'sessionId': code,
                'questionText': text,
                'options': [{'text': o, 'isCorrect': i == correct} for i, o in enumerate(options)],
            }, headers=admin_headers)
            assert res.status_code == 201, res.get_json()
            ids.append(res.get_json()['data']['_id'])
        return SimpleNamespace(
            code=code.upper(),
            question_ids=ids,
            answers=[options[correct] for _, options, correct in questions],
        )
    return _make


@pytest.fixture()
def quiz(quiz_factory):
    return quiz_factory()


@pytest.fixture()
def join_player(client):
    def _join(name, code='QUIZ1', existing=None):
        body = {'name': name, 'sessionCode': code}
        if existing is not None:
            body['existingParticipantId'] = existing
        res = client.post('/api/participants/register', json=body)
        assert res.status_code == 200, res.get_json()
        return res.get_json()['data']
    return _join


@pytest.fixture()
def start_session(client, admin_headers):
    def _start(code='QUIZ1'):
        res = client.post('/api/sessions/start', json={'sessionCode': code}, headers=admin_headers)
        assert res.status_code == 200, res.get_json()
        return res.get_json()['data']
    return _start


@pytest.fixture()
def advance_session(client, admin_headers):
    def _advance(code='QUIZ1', force=False):
        return client.post(f'/api/sessions/{code}/advance', json={'force': force}, headers=admin_headers)
    return _advance


@pytest.fixture()
def submit(client):
    def _submit(participant_id, question_id, selected, time_left):
        return client.post('/api/participants/submit', json={
            'participantId': participant_id,
            'questionId': question_id,
            'selectedOption': selected,
            'timeLeft': time_left,
        })
    return _submit
