import logging
from typing import Optional


class HostAuthority:
    """Single soft-claimed host slot.

    Any connection may claim the slot and the latest claim wins. A host that
    disconnects releases the slot; nobody inherits it, it has to be claimed
    again explicitly.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.host_sid: Optional[str] = None
        self.logger = logger or logging.getLogger(__name__)

    def claim(self, sid: str) -> None:
        if self.host_sid and self.host_sid != sid:
            self.logger.info(f"[host-claim] sid={sid} replaces={self.host_sid}")
        else:
            self.logger.info(f"[host-claim] sid={sid}")
        self.host_sid = sid

    def is_host(self, sid: str) -> bool:
        return self.host_sid is not None and self.host_sid == sid

    def release(self, sid: str) -> bool:
        if not self.is_host(sid):
            return False
        self.host_sid = None
        self.logger.info(f"[host-left] sid={sid}")
        return True

    @property
    def has_host(self) -> bool:
        return self.host_sid is not None
