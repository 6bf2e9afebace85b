import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated; '*' allows any origin
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Bootstrap listen address
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))
    # Roster capacity
    DEFAULT_REQUIRED_PLAYERS = int(os.environ.get('DEFAULT_REQUIRED_PLAYERS', '2'))
    MIN_REQUIRED_PLAYERS = int(os.environ.get('MIN_REQUIRED_PLAYERS', '2'))
    MAX_REQUIRED_PLAYERS = int(os.environ.get('MAX_REQUIRED_PLAYERS', '8'))
    # Round timing (ms unless noted)
    ROUND_DURATION_MS = int(os.environ.get('ROUND_DURATION_MS', '20000'))
    COUNTDOWN_SECONDS = int(os.environ.get('COUNTDOWN_SECONDS', '3'))
    END_TIMER_MARGIN_MS = int(os.environ.get('END_TIMER_MARGIN_MS', '50'))
    # Tapping
    TAP_MIN_INTERVAL_MS = int(os.environ.get('TAP_MIN_INTERVAL_MS', '50'))
    TAP_INCREMENT = float(os.environ.get('TAP_INCREMENT', '0.55'))
    # Disconnected players are kept this long for reconnection
    DISCONNECT_GRACE_MS = int(os.environ.get('DISCONNECT_GRACE_MS', str(5 * 60 * 1000)))
    NAME_MAX_LENGTH = int(os.environ.get('NAME_MAX_LENGTH', '16'))
