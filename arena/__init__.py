from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS', [])

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Room/match services, one isolated instance per app
    from arena.services.container import ArenaServices
    from arena.stats import results_recorder
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/')

    def emit(event, payload, sid):
        socketio.emit(event, payload, to=sid, namespace=namespace)

    run_background = not flask_app.config.get('TESTING') or flask_app.config.get('ENABLE_SCHEDULER_IN_TESTS')
    services = ArenaServices(
        flask_app.config,
        emit,
        logger=flask_app.logger,
        spawn=socketio.start_background_task if run_background else None,
        sleep=socketio.sleep,
    )
    services.engine.on_finalized.append(results_recorder(flask_app))
    flask_app.extensions['arena'] = services

    from arena.errors import ArenaError

    @flask_app.errorhandler(ArenaError)
    def handle_arena_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    # Import and register blueprints here
    from arena.main import main
    flask_app.register_blueprint(main)

    from arena.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/rooms')

    from arena.api.judge import judge
    flask_app.register_blueprint(judge, url_prefix='/judge0')

    from arena.api.trivia import trivia
    flask_app.register_blueprint(trivia, url_prefix='/trivia')

    from arena.api.stats import stats
    flask_app.register_blueprint(stats, url_prefix='/me')

    from arena.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace)

    # Flask-Login user loader
    from arena.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Login required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            users = ['alice', 'bob', 'carol']
            for u in users:
                user = User(username=u)
                user.set_password('password')
                db.session.add(user)

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
