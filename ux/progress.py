from __future__ import annotations

import logging
from typing import Optional

from bot.transport import ChatTransport, MessageHandle


def should_report(done: int, total: int, every: int = 2) -> bool:
    """Progress cadence: every ``every``-th item and always the last one."""
    if total <= 0:
        return False
    return done == total or (every > 0 and done % every == 0)


class StatusMessage:
    """One chat message that is sent once and then overwritten in place.

    Updates are best-effort UX: a failed send or edit is logged and never
    raised to the pipeline.
    """

    def __init__(self, transport: ChatTransport, chat_id: str, handle: Optional[MessageHandle] = None,
                 logger: Optional[logging.Logger] = None) -> None:
        self.transport = transport
        self.chat_id = chat_id
        self.handle = handle
        self.last_text: Optional[str] = None
        self._log = logger or logging.getLogger("kirobot.progress")

    @classmethod
    async def open(cls, transport: ChatTransport, chat_id: str, text: str) -> "StatusMessage":
        status = cls(transport, chat_id)
        await status.update(text)
        return status

    async def update(self, text: str) -> None:
        if text == self.last_text:
            return
        try:
            if self.handle is None:
                self.handle = await self.transport.send_text(self.chat_id, text)
            else:
                await self.transport.edit_text(self.handle, text)
            self.last_text = text
        except Exception as e:  # noqa: BLE001
            self._log.warning("failed to send or update status message: %s", e)

    async def step(self, label: str, done: int, total: int, every: int = 2) -> None:
        if should_report(done, total, every):
            await self.update(f"{label} {done}/{total}")
