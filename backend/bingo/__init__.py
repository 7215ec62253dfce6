from flask import Flask, g, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import HTTPException
import click
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

PLAYER_HEADER = 'X-Player-Id'


def register_error_handlers(flask_app):
    from bingo.errors import BingoError

    @flask_app.errorhandler(BingoError)
    def handle_bingo_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(StaleDataError)
    def handle_stale_write(exc):
        db.session.rollback()
        flask_app.logger.warning(f"[conflict] concurrent update lost the race: {exc}")
        return jsonify({'error': 'Conflict', 'message': 'The game changed underneath you, retry'}), 409

    @flask_app.errorhandler(HTTPException)
    def handle_http_error(exc):
        kinds = {400: 'InvalidInput', 403: 'Forbidden', 404: 'NotFound', 409: 'Conflict'}
        return jsonify({'error': kinds.get(exc.code, exc.name), 'message': exc.description}), exc.code

    @flask_app.errorhandler(SQLAlchemyError)
    def handle_store_error(exc):
        db.session.rollback()
        flask_app.logger.exception("[store-error] database failure")
        return jsonify({'error': 'ServerError', 'message': 'ServerError'}), 500

    @flask_app.errorhandler(Exception)
    def handle_unexpected(exc):
        db.session.rollback()
        flask_app.logger.exception("[unhandled] unexpected error")
        return jsonify({'error': 'ServerError', 'message': 'ServerError'}), 500


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins, expose_headers=[PLAYER_HEADER])

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Import and register blueprints here
    from bingo.main import main
    flask_app.register_blueprint(main)

    from bingo.api.games import games
    # Mount game routes under /api to match frontend API client
    flask_app.register_blueprint(games, url_prefix='/api/games')

    register_error_handlers(flask_app)

    # Register Socket.IO event handlers
    from bingo.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Players authenticate with the id handed out on create/join; no cookies
    from bingo.models import Player

    @login_manager.user_loader
    def load_user(player_id):
        # Identity comes from each request's token, never from the session
        return None

    @flask_app.before_request
    def forget_previous_player():
        # g outlives a request when an app context is shared across requests
        g.pop('_login_user', None)

    @login_manager.request_loader
    def load_player_from_request(req):
        token = req.headers.get(PLAYER_HEADER)
        if not token:
            data = req.get_json(silent=True)
            token = data.get('player_id') if isinstance(data, dict) else None
        if not token:
            return None
        return Player.query.filter_by(id=str(token)).first()

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
