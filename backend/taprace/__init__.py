from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

cors = CORS()
socketio = SocketIO(async_mode=None)


def _allowed_origins(config):
    raw = config.get('CORS_ORIGINS') or '*'
    if raw == '*':
        return '*'
    return [origin.strip() for origin in raw.split(',') if origin.strip()]


def create_app(config_class=Config, scheduler=None, clock=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = _allowed_origins(flask_app.config)
    cors.init_app(flask_app, supports_credentials=allowed_origins != '*', origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from taprace.services.game import GameSession, GameSettings, SocketIOScheduler
    from taprace.services.game.session import now_ms

    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/')

    def emit(event, payload=None, to=None):
        # Events without a payload go out with no arguments
        args = () if payload is None else (payload,)
        socketio.emit(event, *args, to=to, namespace=namespace)

    flask_app.extensions['taprace'] = GameSession(
        emit,
        scheduler or SocketIOScheduler(socketio),
        settings=GameSettings.from_config(flask_app.config),
        clock=clock or now_ms,
        logger=flask_app.logger,
    )

    from taprace.routes import main
    flask_app.register_blueprint(main)

    from taprace.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace)

    return flask_app
