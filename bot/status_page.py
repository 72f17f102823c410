from __future__ import annotations

import base64
import html
import io
import logging

import qrcode
from aiohttp import web

from .session import SessionRegistry


log = logging.getLogger("kirobot.status")


def qr_data_url(payload: str) -> str:
    img = qrcode.make(payload)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def render_status(registry: SessionRegistry, bot_name: str = "Kiroflix Bot") -> str:
    title = html.escape(bot_name)
    if not registry.qr_code:
        if registry.connected:
            return f"<h2>{title}</h2>\n<p>Bot is connected ✅</p>\n"
        return f"<h2>{title}</h2>\n<p>Waiting for WhatsApp login... ⏳</p>\n"
    return (
        f"<h2>{title}</h2>\n"
        "<p>Scan this QR code to login:</p>\n"
        f'<img src="{qr_data_url(registry.qr_code)}" alt="WhatsApp QR" />\n'
    )


def build_status_app(registry: SessionRegistry, bot_name: str = "Kiroflix Bot") -> web.Application:
    async def index(_: web.Request) -> web.Response:
        return web.Response(text=render_status(registry, bot_name), content_type="text/html")

    app = web.Application()
    app.router.add_get("/", index)
    return app


async def start_status_server(app: web.Application, port: int) -> web.AppRunner:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host="0.0.0.0", port=port)
    await site.start()
    log.info("status page running on %d", port)
    return runner
