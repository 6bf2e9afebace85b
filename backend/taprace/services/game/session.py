import functools
import logging
import threading
import time
from typing import Callable, Optional

from taprace.models import SessionState
from .errors import InvalidParameter, InvalidState, JoinRejected, NotEnoughPlayers, SilentRejection, Unauthorized
from .host import HostAuthority
from .protocol import BroadcastProtocol, build_snapshot
from .registry import MAX_PROGRESS, PlayerRegistry, TapResult


def now_ms() -> int:
    return int(time.time() * 1000)


class GameSettings:
    """Tunables for a session, usually built from the Flask config."""

    def __init__(
        self,
        default_required_players: int = 2,
        min_required_players: int = 2,
        max_required_players: int = 8,
        round_duration_ms: int = 20000,
        countdown_seconds: int = 3,
        end_timer_margin_ms: int = 50,
        tap_min_interval_ms: int = 50,
        tap_increment: float = 0.55,
        disconnect_grace_ms: int = 5 * 60 * 1000,
        name_max_length: int = 16,
    ):
        self.default_required_players = default_required_players
        self.min_required_players = min_required_players
        self.max_required_players = max_required_players
        self.round_duration_ms = round_duration_ms
        self.countdown_seconds = countdown_seconds
        self.end_timer_margin_ms = end_timer_margin_ms
        self.tap_min_interval_ms = tap_min_interval_ms
        self.tap_increment = tap_increment
        self.disconnect_grace_ms = disconnect_grace_ms
        self.name_max_length = name_max_length

    @classmethod
    def from_config(cls, config) -> 'GameSettings':
        defaults = cls()
        return cls(
            default_required_players=int(config.get('DEFAULT_REQUIRED_PLAYERS', defaults.default_required_players)),
            min_required_players=int(config.get('MIN_REQUIRED_PLAYERS', defaults.min_required_players)),
            max_required_players=int(config.get('MAX_REQUIRED_PLAYERS', defaults.max_required_players)),
            round_duration_ms=int(config.get('ROUND_DURATION_MS', defaults.round_duration_ms)),
            countdown_seconds=int(config.get('COUNTDOWN_SECONDS', defaults.countdown_seconds)),
            end_timer_margin_ms=int(config.get('END_TIMER_MARGIN_MS', defaults.end_timer_margin_ms)),
            tap_min_interval_ms=int(config.get('TAP_MIN_INTERVAL_MS', defaults.tap_min_interval_ms)),
            tap_increment=float(config.get('TAP_INCREMENT', defaults.tap_increment)),
            disconnect_grace_ms=int(config.get('DISCONNECT_GRACE_MS', defaults.disconnect_grace_ms)),
            name_max_length=int(config.get('NAME_MAX_LENGTH', defaults.name_max_length)),
        )


def turn(method):
    """Run a session operation as one non-overlapping turn.

    Silent rejections (wrong role, wrong state, bad parameter) are logged
    and dropped here so the caller never sees them.
    """
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            try:
                return method(self, *args, **kwargs)
            except SilentRejection as exc:
                self.logger.debug(f"[ignored] action={method.__name__} reason={exc.code} {exc.message}")
                return None
    return wrapper


class GameSession:
    """The shared race: roster, host slot, state machine and its two timers.

    lobby -> countdown (host start, enough players)
    countdown -> running (after the countdown timer)
    running -> ended (end timer, or a player reaching 100)
    ended -> countdown (host start again)
    any -> lobby (host reset)

    ``emit(event, payload, to=None)`` delivers outbound events;
    ``scheduler.call_later(delay_ms, callback)`` arms timers and returns a
    handle with ``cancel()``. Each timer remembers the generation it was
    armed in and only acts if the generation and expected state still hold.
    """

    def __init__(
        self,
        emit: Callable[..., None],
        scheduler,
        settings: Optional[GameSettings] = None,
        clock: Callable[[], int] = now_ms,
        logger: Optional[logging.Logger] = None,
    ):
        self.settings = settings or GameSettings()
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock
        self.scheduler = scheduler
        self.protocol = BroadcastProtocol(emit)
        self.registry = PlayerRegistry(
            clock,
            grace_ms=self.settings.disconnect_grace_ms,
            tap_interval_ms=self.settings.tap_min_interval_ms,
            tap_increment=self.settings.tap_increment,
            name_max_length=self.settings.name_max_length,
            logger=self.logger,
        )
        self.host = HostAuthority(logger=self.logger)
        self.state = SessionState.LOBBY
        self.required_players = self.settings.default_required_players
        self.duration_ms = self.settings.round_duration_ms
        self.started_at: Optional[int] = None
        self.generation = 0
        self.countdown_timer = None
        self.end_timer = None
        self.lock = threading.RLock()

    # ---- connection lifecycle ----

    @turn
    def connect(self, sid: str) -> None:
        self.protocol.snapshot(self, to=sid)

    @turn
    def disconnect(self, sid: str) -> None:
        was_host = self.host.release(sid)
        player = self.registry.mark_disconnected(sid)
        if player is not None:
            self.logger.info(f"[disconnect] key={player.key} sid={sid} state={self.state}")
        if was_host:
            self.protocol.host_left()
        if was_host or player is not None:
            self.protocol.snapshot(self)

    # ---- host actions ----

    @turn
    def claim_host(self, sid: str) -> None:
        self.host.claim(sid)
        self.protocol.host_claimed(sid)
        self.protocol.snapshot(self)

    @turn
    def set_required_players(self, sid: str, value) -> None:
        self._require_host(sid)
        self._require_state(SessionState.LOBBY)
        required = self._parse_required_players(value)
        self.required_players = required
        self.registry.clamp_to_capacity(required)
        self.logger.info(f"[capacity] required_players={required}")
        self.protocol.snapshot(self)

    @turn
    def start_game(self, sid: str) -> bool:
        self._require_host(sid)
        self._require_state(*SessionState.OPEN)

        joined = self.registry.count()
        if joined < self.required_players:
            exc = NotEnoughPlayers(joined, self.required_players)
            self.logger.info(f"[start-reject] {exc.message}")
            self.protocol.host_error(sid, exc.message)
            return False

        self._cancel_timers()
        self.generation += 1
        self.registry.reset_progress()
        self.started_at = None
        self._set_state(SessionState.COUNTDOWN)

        seconds = self.settings.countdown_seconds
        self.protocol.countdown(seconds)
        self.protocol.snapshot(self)
        self.countdown_timer = self._schedule('countdown', seconds * 1000, SessionState.COUNTDOWN, self._begin_round)
        return True

    @turn
    def reset_to_lobby(self, sid: str) -> None:
        self._require_host(sid)
        self._cancel_timers()
        self.generation += 1
        self.started_at = None
        self.registry.reset_progress()
        self._set_state(SessionState.LOBBY)
        self.protocol.reset()
        self.protocol.snapshot(self)

    # ---- player actions ----

    @turn
    def join(self, sid: str, name, key=None):
        try:
            player = self.registry.join(sid, name, key, state=self.state, capacity=self.required_players)
        except JoinRejected as exc:
            self.logger.info(f"[join-reject] sid={sid} reason={exc.code} state={self.state}")
            self.protocol.join_rejected(sid, exc.message)
            return None
        self.protocol.join_accepted(sid, player)
        self.protocol.snapshot(self)
        return player

    @turn
    def tap(self, sid: str) -> TapResult:
        result = self.registry.record_tap(sid, self.state)
        if not result.applied:
            return result
        self.protocol.progress(result.player)
        if result.progress >= MAX_PROGRESS:
            self.logger.info(f"[finish] key={result.player.key} reached {MAX_PROGRESS}")
            self._end_game()
        return result

    @turn
    def end_game(self):
        return self._end_game()

    @turn
    def snapshot(self) -> dict:
        return build_snapshot(self)

    # ---- transitions ----

    def _begin_round(self) -> None:
        self.countdown_timer = None
        self.started_at = self.clock()
        self.registry.reset_progress()
        self._set_state(SessionState.RUNNING)
        self.protocol.started(self.started_at, self.duration_ms)
        self.protocol.snapshot(self)
        delay = self.duration_ms + self.settings.end_timer_margin_ms
        self.end_timer = self._schedule('end', delay, SessionState.RUNNING, self._on_end_timer)

    def _on_end_timer(self) -> None:
        self.end_timer = None
        self._end_game()

    def _end_game(self):
        if self.state != SessionState.RUNNING:
            self.logger.debug(f"[end-skip] state={self.state}")
            return None
        self._cancel_timers()
        self.generation += 1
        self.started_at = None
        self._set_state(SessionState.ENDED)
        payload = self.protocol.ended(self.registry.roster())
        self.protocol.snapshot(self)
        return payload

    # ---- helpers ----

    def _require_host(self, sid: str) -> None:
        if not self.host.is_host(sid):
            raise Unauthorized(f"sid={sid}")

    def _require_state(self, *states: str) -> None:
        if self.state not in states:
            raise InvalidState(f"state={self.state} expected={'|'.join(states)}")

    def _parse_required_players(self, value) -> int:
        if isinstance(value, bool):
            raise InvalidParameter(f"requiredPlayers={value!r}")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise InvalidParameter(f"requiredPlayers={value!r}")
        lo, hi = self.settings.min_required_players, self.settings.max_required_players
        if not number.is_integer() or not lo <= number <= hi:
            raise InvalidParameter(f"requiredPlayers={value!r} allowed={lo}..{hi}")
        return int(number)

    def _set_state(self, new_state: str) -> None:
        if new_state != self.state:
            self.logger.info(f"[state] {self.state} -> {new_state} generation={self.generation}")
        self.state = new_state

    def _cancel_timers(self) -> None:
        for handle in (self.countdown_timer, self.end_timer):
            if handle is not None:
                handle.cancel()
        self.countdown_timer = None
        self.end_timer = None

    def _schedule(self, kind: str, delay_ms: int, expected_state: str, callback: Callable[[], None]):
        generation = self.generation
        self.logger.info(f"[timer-set] kind={kind} generation={generation} delay_ms={delay_ms}")

        def _fire():
            with self.lock:
                self.logger.info(
                    f"[timer-fire] kind={kind} generation={generation} current_generation={self.generation} state={self.state}"
                )
                if generation != self.generation or self.state != expected_state:
                    self.logger.info(f"[timer-abort] kind={kind} stale timer")
                    return
                callback()

        return self.scheduler.call_later(delay_ms, _fire)

    @property
    def timers_armed(self) -> bool:
        return any(h is not None and h.active for h in (self.countdown_timer, self.end_timer))
