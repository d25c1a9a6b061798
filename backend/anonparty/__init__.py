from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from anonparty.config import Config, GameRules

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS', '*')

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Game rules are frozen once at startup and handed to the services from here
    flask_app.extensions['anonparty.rules'] = GameRules.from_config(flask_app.config)

    from anonparty.store import SnapshotHub
    flask_app.extensions['anonparty.hub'] = SnapshotHub(
        retry_base_sec=float(flask_app.config.get('SUBSCRIPTION_RETRY_BASE_SEC', 0.5)),
        max_retries=int(flask_app.config.get('SUBSCRIPTION_MAX_RETRIES', 5)),
        sleep=socketio.sleep,
        spawn=None if flask_app.config.get('TESTING') else _background_spawner(flask_app),
    )

    from anonparty.auth import auth
    flask_app.register_blueprint(auth, url_prefix='/auth')

    from anonparty.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    @flask_app.route('/')
    def index():
        return jsonify({'message': 'Welcome to the anonymous party game server!'})

    from anonparty.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from anonparty.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, user_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'unauthorized', 'message': 'Sign in first.'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app


def _background_spawner(flask_app):
    def spawn(fn, *args):
        def _run():
            with flask_app.app_context():
                fn(*args)
        return socketio.start_background_task(_run)
    return spawn
