from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union


@dataclass(frozen=True)
class MessageHandle:
    """Identity of a sent message, used to edit it in place later."""

    chat_id: str
    message_id: str


@dataclass
class InboundMessage:
    chat_id: str
    text: str
    is_group: bool = False
    from_me: bool = False


class ChatTransport(Protocol):
    async def send_text(self, chat_id: str, text: str) -> MessageHandle: ...

    async def edit_text(self, handle: MessageHandle, text: str) -> None: ...

    async def send_image(self, chat_id: str, image: Union[str, bytes], caption: str = "") -> MessageHandle: ...

    async def send_document(self, chat_id: str, data: bytes, *, filename: str, caption: str = "",
                            mimetype: str = "application/pdf") -> MessageHandle: ...
