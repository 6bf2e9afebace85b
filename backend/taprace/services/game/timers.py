from typing import Callable


class TimerHandle:
    """Cancellation flag shared with a scheduled worker.

    Cancellation is cooperative: the worker checks the flag after sleeping
    and skips the callback if it was set.
    """

    def __init__(self, delay_ms: int):
        self.delay_ms = delay_ms
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class SocketIOScheduler:
    """Run callbacks after a delay on Socket.IO background tasks.

    Uses ``socketio.sleep`` so the worker yields correctly under threading,
    eventlet or gevent async modes alike.
    """

    def __init__(self, socketio):
        self.socketio = socketio

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(delay_ms)

        def _worker():
            self.socketio.sleep(max(0, delay_ms) / 1000.0)
            if handle.cancelled:
                return
            handle.fired = True
            callback()

        self.socketio.start_background_task(_worker)
        return handle
