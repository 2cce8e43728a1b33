from flask import Flask, current_app, jsonify
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
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

COORDINATOR_KEY = 'arena.coordinator'


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One coordinator per app owns all live mini-game state
    from arena.services.live.broadcast import Broadcaster
    from arena.services.live.coordinator import LiveCoordinator
    from arena.services.live.ledger import ParticipantLedger
    flask_app.extensions[COORDINATOR_KEY] = LiveCoordinator.from_config(
        ParticipantLedger(db),
        Broadcaster(socketio),
        flask_app.config,
    )

    from arena.main import main
    flask_app.register_blueprint(main, url_prefix='/api')

    from arena.api.participants import participants
    flask_app.register_blueprint(participants, url_prefix='/api')

    @flask_app.route('/')
    def index():
        return jsonify({'message': 'Squid Arena live server'})

    from arena.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from arena.models import Participant

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(Participant, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with the admin account."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            admin = Participant(
                identity=flask_app.config['ADMIN_IDENTITY'],
                name='Admin',
                role='admin',
            )
            admin.set_password(flask_app.config['ADMIN_PASSWORD'])
            db.session.add(admin)
            db.session.commit()
            print('Database has been reset and seeded!')

    @click.command('import-roster')
    @click.argument('csv_file', type=click.File('r', encoding='utf-8-sig'))
    def import_roster_command(csv_file):
        """Registers participants from a CSV file (name, identity, password, is_girl)."""
        from arena.services.roster.importer import import_rows, parse_csv
        with flask_app.app_context():
            created = import_rows(parse_csv(csv_file))
            print(f'Imported {created} new participants.')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(import_roster_command)

    return flask_app


def get_coordinator():
    """Return the live coordinator bound to the current app."""
    return current_app.extensions[COORDINATOR_KEY]
