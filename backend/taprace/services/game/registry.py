import logging
import uuid
from collections import namedtuple
from typing import Callable, Dict, List, Optional

from taprace.models import Player, SessionState
from .errors import InvalidName, SessionFull, SessionInProgress


TapResult = namedtuple('TapResult', ['applied', 'progress', 'player'])

MAX_PROGRESS = 100.0


def mint_player_key() -> str:
    return f"pk_{uuid.uuid4().hex}"


class PlayerRegistry:
    """Roster of players keyed by their stable player key.

    Keeps a reverse index from Socket.IO sid to player key so a connection
    is bound to at most one player at a time. Disconnected players stay in
    the roster for ``grace_ms`` so they can reconnect with the same key;
    stale ones are swept whenever the roster is read.
    """

    def __init__(
        self,
        clock: Callable[[], int],
        grace_ms: int = 5 * 60 * 1000,
        tap_interval_ms: int = 50,
        tap_increment: float = 0.55,
        name_max_length: int = 16,
        logger: Optional[logging.Logger] = None,
    ):
        self.clock = clock
        self.grace_ms = grace_ms
        self.tap_interval_ms = tap_interval_ms
        self.tap_increment = tap_increment
        self.name_max_length = name_max_length
        self.logger = logger or logging.getLogger(__name__)
        self.players: Dict[str, Player] = {}
        self._key_by_sid: Dict[str, str] = {}

    def normalize_name(self, name) -> str:
        name = str(name or '').strip()[:self.name_max_length]
        if not name:
            raise InvalidName()
        return name

    def join(self, sid: str, name, key=None, *, state: str, capacity: int) -> Player:
        """Create or rebind the player for ``key`` on connection ``sid``.

        Raises a ``JoinRejected`` subclass when the name is empty, the round
        is in progress and the key is unknown, or the roster is full.
        """
        name = self.normalize_name(name)
        key = str(key or '').strip() or mint_player_key()

        self.sweep_stale()
        existing = self.players.get(key)
        if existing is None:
            if state not in SessionState.OPEN:
                raise SessionInProgress()
            if len(self.players) >= capacity:
                raise SessionFull()

        now = self.clock()
        # A connection owns at most one player
        previous_key = self._key_by_sid.get(sid)
        if previous_key is not None and previous_key != key:
            self._unbind(previous_key, now)

        if existing is None:
            player = Player(key=key, sid=sid, name=name, now_ms=now)
            self.players[key] = player
            self.logger.info(f"[join] new key={key} sid={sid} name={name!r} roster={len(self.players)}")
        else:
            player = existing
            if player.sid != sid and self._key_by_sid.get(player.sid) == key:
                del self._key_by_sid[player.sid]
            player.sid = sid
            player.name = name
            player.connected = True
            player.last_seen_at = now
            self.logger.info(f"[join] rejoin key={key} sid={sid} name={name!r} progress={player.progress}")

        self._key_by_sid[sid] = key
        return player

    def player_for(self, sid: str) -> Optional[Player]:
        key = self._key_by_sid.get(sid)
        return self.players.get(key) if key is not None else None

    def record_tap(self, sid: str, state: str) -> TapResult:
        """Apply one tap for the player bound to ``sid``.

        Taps arriving sooner than ``tap_interval_ms`` after the last accepted
        one are dropped, not queued.
        """
        if state != SessionState.RUNNING:
            return TapResult(False, None, None)
        player = self.player_for(sid)
        if player is None:
            return TapResult(False, None, None)

        now = self.clock()
        if player.last_tap_at is not None and now - player.last_tap_at < self.tap_interval_ms:
            self.logger.debug(f"[tap-drop] key={player.key} since_last={now - player.last_tap_at}ms")
            return TapResult(False, player.progress, player)

        player.last_tap_at = now
        player.progress = min(MAX_PROGRESS, player.progress + self.tap_increment)
        return TapResult(True, player.progress, player)

    def mark_disconnected(self, sid: str) -> Optional[Player]:
        key = self._key_by_sid.pop(sid, None)
        player = self.players.get(key) if key is not None else None
        if player is None or player.sid != sid:
            return None
        player.connected = False
        player.last_seen_at = self.clock()
        return player

    def _unbind(self, key: str, now: int) -> None:
        player = self.players.get(key)
        if player is None:
            return
        self._key_by_sid.pop(player.sid, None)
        player.connected = False
        player.last_seen_at = now

    def _remove(self, key: str) -> None:
        player = self.players.pop(key, None)
        if player is not None and self._key_by_sid.get(player.sid) == key:
            del self._key_by_sid[player.sid]

    def clamp_to_capacity(self, limit: int) -> List[Player]:
        """Evict players beyond ``limit``.

        Connected players are kept before disconnected ones, then the most
        recently seen, then by key so the outcome is reproducible.
        """
        if len(self.players) <= limit:
            return []
        ranked = sorted(
            self.players.values(),
            key=lambda p: (not p.connected, -p.last_seen_at, p.key),
        )
        evicted = ranked[limit:]
        for player in evicted:
            self._remove(player.key)
            self.logger.info(f"[evict] key={player.key} connected={player.connected} limit={limit}")
        return evicted

    def sweep_stale(self, grace_ms: Optional[int] = None) -> List[Player]:
        grace_ms = self.grace_ms if grace_ms is None else grace_ms
        now = self.clock()
        stale = [
            p for p in self.players.values()
            if not p.connected and now - p.last_seen_at > grace_ms
        ]
        for player in stale:
            self._remove(player.key)
            self.logger.info(f"[sweep] key={player.key} disconnected_for={now - player.last_seen_at}ms")
        return stale

    def reset_progress(self) -> None:
        for player in self.players.values():
            player.reset_progress()

    def roster(self) -> List[Player]:
        self.sweep_stale()
        return list(self.players.values())

    def count(self) -> int:
        return len(self.roster())

    def snapshot(self) -> List[dict]:
        return [p.to_dict() for p in self.roster()]
