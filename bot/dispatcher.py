from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional

from integrations.kiroflix_client import KiroflixClient
from ux.progress import StatusMessage
from .intent import IntentClassifier
from .models import MessageType
from .session import SessionRegistry
from .transport import ChatTransport, InboundMessage
from .workers.anime import AnimeWorker
from .workers.manhwa import ManhwaWorker


CLARIFY_ANIME = "❌ Could not detect anime. Send the title and episode number, e.g. 'one piece episode 5'"
THINKING = "🤔 Thinking..."
GENERIC_FAILURE = "⚠️ Something went wrong"


class DispatchState(Enum):
    IDLE = "idle"
    LOCKED = "locked"
    CLASSIFYING = "classifying"
    ROUTED = "routed"
    REPLYING = "replying"
    UNLOCKED = "unlocked"


def is_group_chat(chat_id: str) -> bool:
    return chat_id.endswith("@g.us")


class Dispatcher:
    """Routes inbound chat messages through classification to the media pipelines.

    At most one pipeline runs per chat: a message arriving while the chat's
    previous message is still being handled is dropped without a reply.
    """

    def __init__(
        self,
        transport: ChatTransport,
        registry: SessionRegistry,
        classifier: IntentClassifier,
        anime: AnimeWorker,
        manhwa: ManhwaWorker,
        client: KiroflixClient,
        *,
        group_command: str = "/stream",
    ) -> None:
        self.transport = transport
        self.registry = registry
        self.classifier = classifier
        self.anime = anime
        self.manhwa = manhwa
        self.client = client
        self.group_command = group_command
        self._command_re = re.compile(rf"^{re.escape(group_command)}", re.IGNORECASE)
        self.log = logging.getLogger("kirobot.bot")

    def _transition(self, chat_id: str, state: DispatchState, detail: str = "") -> None:
        self.log.debug("dispatch %s%s", state.value, f" ({detail})" if detail else "", extra={"chat_id": chat_id})

    def prepare(self, msg: InboundMessage) -> Optional[str]:
        """Return the text to dispatch, or None when the message must be ignored."""
        if msg.from_me:
            return None
        text = (msg.text or "").strip()
        if not text:
            return None
        if msg.is_group or is_group_chat(msg.chat_id):
            if not self._command_re.match(text):
                return None
            text = self._command_re.sub("", text, count=1).strip()
        return text or None

    async def on_message(self, msg: InboundMessage) -> None:
        text = self.prepare(msg)
        if text is None:
            return
        await self.dispatch(msg.chat_id, text)

    async def dispatch(self, chat_id: str, text: str) -> None:
        if not self.registry.try_acquire(chat_id):
            return
        self._transition(chat_id, DispatchState.LOCKED)
        try:
            status = await StatusMessage.open(self.transport, chat_id, THINKING)

            self._transition(chat_id, DispatchState.CLASSIFYING)
            kind = await self.classifier.classify(text)
            self._transition(chat_id, DispatchState.ROUTED, kind.value)

            if kind is MessageType.ANIME:
                intent = await self.classifier.parse_anime_intent(text)
                self._transition(chat_id, DispatchState.REPLYING)
                if intent is None or intent.not_found:
                    await status.update(CLARIFY_ANIME)
                    return
                await self.anime.handle(chat_id, intent, text, status, self.transport)
                return

            if kind is MessageType.MANHWA:
                self._transition(chat_id, DispatchState.REPLYING)
                await status.update("📚 Loading manhwa...")
                await self.manhwa.handle(chat_id, text, status, self.transport)
                return

            reply = await self.classifier.general_reply(text)
            self._transition(chat_id, DispatchState.REPLYING)
            await status.update(reply)
            await self.client.log_usage(user_jid=chat_id, username=chat_id, user_message=text, ai_reply=reply)
        except Exception as e:  # noqa: BLE001
            self.log.error("message handler failed: %s", e, exc_info=True)
            try:
                await self.transport.send_text(chat_id, GENERIC_FAILURE)
            except Exception as send_err:  # noqa: BLE001
                self.log.warning("failed to send failure message: %s", send_err)
        finally:
            self.registry.release(chat_id)
            self._transition(chat_id, DispatchState.UNLOCKED)
