from flask import Flask, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
import click
import time
from config import Config

db = SQLAlchemy()
migrate = Migrate()
default_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
socketio = SocketIO(cors_allowed_origins=default_origins, async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.config.setdefault('ENVIRONMENT', 'development')
    flask_app.config['STARTED_AT'] = time.time()
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or default_origins
    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from mazehunt.main import main
    flask_app.register_blueprint(main)

    from mazehunt.api.identity import identity
    flask_app.register_blueprint(identity, url_prefix='/api/user')

    from mazehunt.api.leaderboard import leaderboard
    flask_app.register_blueprint(leaderboard, url_prefix='/api')

    from mazehunt.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    _register_error_handlers(flask_app)

    @flask_app.before_request
    def log_request():
        flask_app.logger.info(f"{request.method} {request.path}")

    @click.command('db-reset')
    @click.option('--seed', is_flag=True, help='Add demo identities and scores.')
    def db_reset_command(seed):
        """Drops, recreates, and optionally seeds the database."""
        from mazehunt.models import DeviceIdentity, ScoreRecord
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            if seed:
                for score, level, verified in [(15400, 7, True), (9800, 5, False), (4200, 3, False)]:
                    identity = DeviceIdentity(fingerprint_user_agent='seed', is_verified=verified)
                    identity.touch_address('127.0.0.1')
                    db.session.add(identity)
                    db.session.flush()
                    db.session.add(ScoreRecord(
                        device_id=identity.device_id,
                        display_id=identity.display_id,
                        score=score,
                        level=level,
                        is_verified=verified,
                        submission_user_agent='seed',
                        submission_address='127.0.0.1',
                    ))

            db.session.commit()
            print('Database has been reset' + (' and seeded!' if seed else '!'))

    flask_app.cli.add_command(db_reset_command)

    return flask_app


def _register_error_handlers(flask_app):
    from mazehunt.errors import ServiceError, InternalError

    def expose_details():
        return flask_app.config.get('ENVIRONMENT') == 'development'

    @flask_app.errorhandler(ServiceError)
    def handle_service_error(exc):
        include_message = expose_details() or not isinstance(exc, InternalError)
        return jsonify(exc.to_dict(include_message=include_message)), exc.status_code

    @flask_app.errorhandler(SQLAlchemyError)
    def handle_storage_error(exc):
        db.session.rollback()
        flask_app.logger.error(f"[storage] {request.method} {request.path} failed: {exc}")
        payload = {'error': 'Internal server error'}
        payload['message'] = str(exc) if expose_details() else 'Something went wrong'
        return jsonify(payload), 500

    @flask_app.errorhandler(404)
    def handle_not_found(exc):
        if request.path.startswith('/api/'):
            return jsonify({'error': 'API endpoint not found'}), 404
        return jsonify({'error': 'Not found'}), 404

    @flask_app.errorhandler(Exception)
    def handle_unexpected(exc):
        if isinstance(exc, HTTPException):
            return jsonify({'error': exc.name}), exc.code
        flask_app.logger.exception(f"[unhandled] {request.method} {request.path}")
        payload = {'error': 'Internal server error'}
        payload['message'] = str(exc) if expose_details() else 'Something went wrong'
        return jsonify(payload), 500
