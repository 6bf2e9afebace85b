from flask import current_app, request
from taprace import socketio
from taprace.services.game import protocol


def _session():
    return current_app.extensions['taprace']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _payload(data) -> dict:
    return data if isinstance(data, dict) else {}


def handle_connect(auth=None):
    _session().connect(_get_sid())


def handle_disconnect(reason=None):
    _session().disconnect(_get_sid())


def handle_host_claim(data=None):
    _session().claim_host(_get_sid())


def handle_host_set_players(data=None):
    _session().set_required_players(_get_sid(), _payload(data).get('requiredPlayers'))


def handle_host_start_game(data=None):
    _session().start_game(_get_sid())


def handle_host_reset_to_lobby(data=None):
    _session().reset_to_lobby(_get_sid())


def handle_player_join(data=None):
    data = _payload(data)
    _session().join(_get_sid(), data.get('name'), data.get('playerKey'))


def handle_player_tap(data=None):
    _session().tap(_get_sid())


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event(protocol.HOST_CLAIM, handle_host_claim, namespace=namespace)
    socketio.on_event(protocol.HOST_SET_PLAYERS, handle_host_set_players, namespace=namespace)
    socketio.on_event(protocol.HOST_START_GAME, handle_host_start_game, namespace=namespace)
    socketio.on_event(protocol.HOST_RESET_TO_LOBBY, handle_host_reset_to_lobby, namespace=namespace)
    socketio.on_event(protocol.PLAYER_JOIN, handle_player_join, namespace=namespace)
    socketio.on_event(protocol.PLAYER_TAP, handle_player_tap, namespace=namespace)
