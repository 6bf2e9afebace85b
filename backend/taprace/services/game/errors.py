"""Rejections raised by the game session components.

``JoinRejected`` and ``NotEnoughPlayers`` are answered to the caller;
``SilentRejection`` subclasses are logged and dropped, since they come from
stale or racing UI actions rather than user mistakes.
"""


class SessionError(Exception):
    """Base class for all rejected session actions."""

    code = 'SessionError'

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message


class JoinRejected(SessionError):
    reason = ''

    def __init__(self, message: str = ''):
        super().__init__(message or self.reason)


class InvalidName(JoinRejected):
    code = 'InvalidName'
    reason = 'Name is required.'


class SessionFull(JoinRejected):
    code = 'SessionFull'
    reason = 'Game is full.'


class SessionInProgress(JoinRejected):
    code = 'SessionInProgress'
    reason = 'Game in progress. Ask host to reset.'


class NotEnoughPlayers(SessionError):
    code = 'NotEnoughPlayers'

    def __init__(self, current: int, required: int):
        super().__init__(f'Need {required} players, currently {current}.')
        self.current = current
        self.required = required


class SilentRejection(SessionError):
    pass


class Unauthorized(SilentRejection):
    code = 'Unauthorized'


class InvalidState(SilentRejection):
    code = 'InvalidState'


class InvalidParameter(SilentRejection):
    code = 'InvalidParameter'
