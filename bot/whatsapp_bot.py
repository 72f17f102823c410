from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, Optional, Set, Union

from neonize.aioze.client import NewAClient
from neonize.aioze.events import ConnectedEv, LoggedOutEv, MessageEv
from neonize.proto.Neonize_pb2 import JID
from neonize.proto.waE2E.WAWebProtobufsE2E_pb2 import Message
from neonize.utils.jid import Jid2String, build_jid

from config.loader import is_config_complete, load_runtime_config, load_settings, section
from .dispatcher import Dispatcher
from .factory import build_dispatcher
from .session import SessionRegistry
from .status_page import build_status_app, start_status_server
from .transport import InboundMessage, MessageHandle


def extract_text(message: Message) -> str:
    return (
        message.conversation
        or message.extendedTextMessage.text
        or message.imageMessage.caption
        or message.videoMessage.caption
        or ""
    )


class WhatsAppTransport:
    """ChatTransport over a neonize async client."""

    def __init__(self, client: NewAClient) -> None:
        self.client = client
        self._jids: Dict[str, JID] = {}

    def remember(self, jid: JID) -> str:
        chat_id = Jid2String(jid)
        self._jids[chat_id] = jid
        return chat_id

    def _jid(self, chat_id: str) -> JID:
        jid = self._jids.get(chat_id)
        if jid is None:
            user, _, server = chat_id.partition("@")
            jid = build_jid(user, server or "s.whatsapp.net")
            self._jids[chat_id] = jid
        return jid

    async def send_text(self, chat_id: str, text: str) -> MessageHandle:
        resp = await self.client.send_message(self._jid(chat_id), text)
        return MessageHandle(chat_id, resp.ID)

    async def edit_text(self, handle: MessageHandle, text: str) -> None:
        await self.client.edit_message(self._jid(handle.chat_id), handle.message_id, Message(conversation=text))

    async def send_image(self, chat_id: str, image: Union[str, bytes], caption: str = "") -> MessageHandle:
        resp = await self.client.send_image(self._jid(chat_id), image, caption=caption)
        return MessageHandle(chat_id, resp.ID)

    async def send_document(self, chat_id: str, data: bytes, *, filename: str, caption: str = "",
                            mimetype: str = "application/pdf") -> MessageHandle:
        resp = await self.client.send_document(
            self._jid(chat_id), data, caption=caption, filename=filename, title=filename, mimetype=mimetype
        )
        return MessageHandle(chat_id, resp.ID)


class WhatsAppBot:
    def __init__(self, client: NewAClient, registry: SessionRegistry, transport: WhatsAppTransport,
                 dispatcher: Dispatcher) -> None:
        self.client = client
        self.registry = registry
        self.transport = transport
        self.dispatcher = dispatcher
        self.log = logging.getLogger("kirobot.whatsapp")
        self._tasks: Set[asyncio.Task] = set()
        self._register_events()

    def _register_events(self) -> None:
        client = self.client

        @client.qr
        async def on_qr(_: NewAClient, data_qr: bytes) -> None:
            self.registry.set_qr(data_qr.decode() if isinstance(data_qr, bytes) else str(data_qr))
            self.log.info("QR code updated. Scan it from the status page")

        @client.event(ConnectedEv)
        async def on_connected(_: NewAClient, __: ConnectedEv) -> None:
            self.registry.mark_connected()
            self.log.info("WhatsApp connected")

        @client.event(LoggedOutEv)
        async def on_logged_out(_: NewAClient, __: LoggedOutEv) -> None:
            self.registry.mark_disconnected()
            self.log.warning("WhatsApp session logged out; a new QR login is required")

        @client.event(MessageEv)
        async def on_message(_: NewAClient, event: MessageEv) -> None:
            self._spawn(self.to_inbound(event))

    def to_inbound(self, event: MessageEv) -> InboundMessage:
        source = event.Info.MessageSource
        return InboundMessage(
            chat_id=self.transport.remember(source.Chat),
            text=extract_text(event.Message),
            is_group=bool(source.IsGroup),
            from_me=bool(source.IsFromMe),
        )

    def _spawn(self, msg: InboundMessage) -> None:
        # Senders are handled concurrently; the dispatcher serializes per chat
        task = asyncio.create_task(self.dispatcher.on_message(msg))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run(self) -> None:
        await self.client.connect()
        await self.client.idle()


def build_bot(project_root: Path, registry: Optional[SessionRegistry] = None) -> WhatsAppBot:
    settings = load_settings(project_root)
    registry = registry or SessionRegistry()
    Path(settings.session_db).parent.mkdir(parents=True, exist_ok=True)
    client = NewAClient(settings.session_db)
    transport = WhatsAppTransport(client)
    dispatcher = build_dispatcher(project_root, transport, registry, settings=settings)
    return WhatsAppBot(client, registry, transport, dispatcher)


async def run_bot() -> None:
    project_root = Path(__file__).resolve().parents[1]
    settings = load_settings(project_root)
    if not is_config_complete(settings):
        raise RuntimeError("GEMINI_KEY missing. Set it in .env.")

    bot_cfg = section(load_runtime_config(project_root), "bot")
    registry = SessionRegistry()
    runner = await start_status_server(
        build_status_app(registry, str(bot_cfg.get("botName", "Kiroflix Bot"))), settings.port
    )
    try:
        await build_bot(project_root, registry).run()
    finally:
        await runner.cleanup()


if __name__ == "__main__":
    try:
        print("Bot Has Started!")
        asyncio.run(run_bot())
    except KeyboardInterrupt:
        print("Bot stopped.")
