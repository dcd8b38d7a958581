from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

# Events from one connection are handled in arrival order, one at a time
socketio = SocketIO(async_mode=None, async_handlers=False)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper())

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # In-memory room state lives with the app instance
    from arena.services.rooms import RoomService
    flask_app.extensions['arena'] = {
        'rooms': RoomService.from_config(flask_app.config),
        'sessions': {},
    }

    from arena.main import main
    flask_app.register_blueprint(main)

    from arena.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api')

    # Importing here ensures the handlers bind to the initialized socketio instance
    from arena.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    return flask_app
