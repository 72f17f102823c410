from __future__ import annotations

import logging
from typing import Optional, Set


class SessionRegistry:
    """Process-wide session state owned by the dispatcher.

    Holds the per-chat in-flight locks and the current login QR payload
    (None once the transport is authenticated).
    """

    def __init__(self) -> None:
        self._active: Set[str] = set()
        self.qr_code: Optional[str] = None
        self.connected: bool = False
        self._log = logging.getLogger("kirobot.session")

    def try_acquire(self, chat_id: str) -> bool:
        # Single event loop: check-and-set has no await in between
        if chat_id in self._active:
            self._log.info("lock busy, skipping message", extra={"chat_id": chat_id})
            return False
        self._active.add(chat_id)
        return True

    def release(self, chat_id: str) -> None:
        self._active.discard(chat_id)

    def is_locked(self, chat_id: str) -> bool:
        return chat_id in self._active

    def set_qr(self, payload: str) -> None:
        self.qr_code = payload
        self.connected = False

    def mark_connected(self) -> None:
        self.qr_code = None
        self.connected = True

    def mark_disconnected(self) -> None:
        self.connected = False
