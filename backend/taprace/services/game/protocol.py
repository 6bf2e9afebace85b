"""Outbound event vocabulary and payload shapes.

Every emission goes through ``BroadcastProtocol`` so the event names and
payload keys the clients rely on are defined in one place. ``emit`` is any
callable ``emit(event, payload, to=None)``; ``to=None`` means broadcast.
"""
from typing import Callable, List, Optional

# Server -> client events
GAME_UPDATE = 'game:update'
GAME_RESET = 'game:reset'
GAME_COUNTDOWN = 'game:countdown'
GAME_STARTED = 'game:started'
GAME_PROGRESS = 'game:progress'
GAME_ENDED = 'game:ended'
HOST_CLAIMED = 'host:claimed'
HOST_ERROR = 'host:error'
HOST_LEFT = 'host:left'
PLAYER_JOIN_RESULT = 'player:joinResult'

# Client -> server events
HOST_CLAIM = 'host:claim'
HOST_SET_PLAYERS = 'host:setPlayers'
HOST_START_GAME = 'host:startGame'
HOST_RESET_TO_LOBBY = 'host:resetToLobby'
PLAYER_JOIN = 'player:join'
PLAYER_TAP = 'player:tap'


def build_snapshot(session) -> dict:
    players = session.registry.snapshot()
    return {
        'requiredPlayers': session.required_players,
        'joinedPlayers': len(players),
        'state': session.state,
        'durationMs': session.duration_ms,
        'startedAt': session.started_at,
        'players': players,
        'hasHost': session.host.has_host,
    }


def build_leaderboard(players) -> List[dict]:
    """Order by progress, highest first; ties keep roster order."""
    ranked = sorted(players, key=lambda p: p.progress, reverse=True)
    return [
        {'id': p.sid, 'name': p.name, 'progress': p.progress, 'connected': p.connected}
        for p in ranked
    ]


class BroadcastProtocol:

    def __init__(self, emit: Callable[..., None]):
        self._emit = emit

    def snapshot(self, session, to: Optional[str] = None) -> None:
        self._emit(GAME_UPDATE, build_snapshot(session), to=to)

    def host_claimed(self, sid: str) -> None:
        self._emit(HOST_CLAIMED, {'ok': True}, to=sid)

    def host_error(self, sid: str, message: str) -> None:
        self._emit(HOST_ERROR, {'message': message}, to=sid)

    def host_left(self) -> None:
        self._emit(HOST_LEFT, None)

    def join_accepted(self, sid: str, player) -> None:
        self._emit(PLAYER_JOIN_RESULT, {'ok': True, 'name': player.name, 'playerKey': player.key}, to=sid)

    def join_rejected(self, sid: str, reason: str) -> None:
        self._emit(PLAYER_JOIN_RESULT, {'ok': False, 'reason': reason}, to=sid)

    def countdown(self, seconds: int) -> None:
        self._emit(GAME_COUNTDOWN, {'seconds': seconds})

    def started(self, started_at: int, duration_ms: int) -> None:
        self._emit(GAME_STARTED, {'startedAt': started_at, 'durationMs': duration_ms})

    def progress(self, player) -> None:
        self._emit(GAME_PROGRESS, {'id': player.sid, 'progress': player.progress})

    def ended(self, players) -> dict:
        leaderboard = build_leaderboard(players)
        top = leaderboard[0] if leaderboard else None
        winner = {'id': top['id'], 'name': top['name'], 'progress': top['progress']} if top else None
        payload = {'winner': winner, 'leaderboard': leaderboard}
        self._emit(GAME_ENDED, payload)
        return payload

    def reset(self) -> None:
        self._emit(GAME_RESET, None)
