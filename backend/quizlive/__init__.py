from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

SOCKET_NAMESPACE = '/ws'


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or '*'

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Room membership lives for the lifetime of this app (one per process)
    from quizlive.services.quiz.fanout import RoomRegistry
    flask_app.extensions['quiz_rooms'] = RoomRegistry()

    from quizlive.errors import register_error_handlers
    register_error_handlers(flask_app)

    # Import and register blueprints here
    from quizlive.main import main
    flask_app.register_blueprint(main)

    from quizlive.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from quizlive.api.questions import questions
    flask_app.register_blueprint(questions, url_prefix='/api/questions')

    from quizlive.api.participants import participants
    flask_app.register_blueprint(participants, url_prefix='/api/participants')

    # Register Socket.IO event handlers
    from quizlive.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with a demo quiz."""
        from quizlive.models import QuizSession, Question, QuestionOption
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            session = QuizSession(session_code='QUIZ1', title='Demo Quiz')
            db.session.add(session)
            demo = [
                ('What does HTTP stand for?', ['HyperText Transfer Protocol', 'High Transfer Text Protocol'], 0),
                ('Which keyword defines a function in Python?', ['func', 'def', 'lambda'], 1),
                ('2 + 2 = ?', ['3', '4', '5'], 1),
            ]
            for position, (text, options, correct) in enumerate(demo):
                question = Question(session_code='QUIZ1', position=position, question_text=text)
                question.options = [
                    QuestionOption(position=i, text=o, is_correct=(i == correct))
                    for i, o in enumerate(options)
                ]
                db.session.add(question)

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
