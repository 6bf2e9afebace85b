from typing import Optional


class SessionState:
    LOBBY = 'lobby'
    COUNTDOWN = 'countdown'
    RUNNING = 'running'
    ENDED = 'ended'

    # States in which brand-new players may join and a round may be started
    OPEN = (LOBBY, ENDED)


class Player:
    """A roster entry. Identity is the client-held ``key``; ``sid`` is the
    current Socket.IO connection and changes on every reconnect."""

    def __init__(self, key: str, sid: str, name: str, now_ms: int):
        self.key = key
        self.sid = sid
        self.name = name
        self.progress = 0.0
        self.connected = True
        self.last_seen_at = now_ms
        self.last_tap_at: Optional[int] = None

    def reset_progress(self) -> None:
        self.progress = 0.0
        self.last_tap_at = None

    def to_dict(self):
        return {
            'id': self.sid,
            'name': self.name,
            'progress': self.progress,
            'connected': self.connected,
            'key': self.key,
        }

    def __repr__(self):
        return f"<Player key={self.key} name={self.name!r} progress={self.progress} connected={self.connected}>"
