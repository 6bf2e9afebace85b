"""Game domain services: roster, host slot, session state machine and timers.

Everything here is transport-agnostic; the Socket.IO handlers in
``taprace.socketio_events`` translate inbound events into calls on a
``GameSession`` and the session talks back through an ``emit`` callable.
"""
from .session import GameSession, GameSettings
from .timers import SocketIOScheduler

__all__ = ['GameSession', 'GameSettings', 'SocketIOScheduler']
