import pytest
from aiohttp.test_utils import TestClient, TestServer

from bot.session import SessionRegistry
from bot.status_page import build_status_app, qr_data_url, render_status


def test_render_connected_state():
    registry = SessionRegistry()
    registry.mark_connected()
    page = render_status(registry, "Kiroflix Bot")
    assert "Bot is connected ✅" in page
    assert "<img" not in page


def test_render_logged_out_state_waits_for_login():
    registry = SessionRegistry()
    assert "Waiting for WhatsApp login" in render_status(registry)

    registry.mark_connected()
    registry.mark_disconnected()
    page = render_status(registry)
    assert "Bot is connected" not in page
    assert "Waiting for WhatsApp login" in page


def test_render_qr_state():
    registry = SessionRegistry()
    registry.set_qr("2@abc,def,ghi")
    page = render_status(registry)
    assert "Scan this QR code to login" in page
    assert 'src="data:image/png;base64,' in page
    assert not registry.connected


def test_qr_data_url_is_png():
    assert qr_data_url("hello").startswith("data:image/png;base64,iVBOR")


@pytest.mark.asyncio
async def test_status_endpoint_follows_registry():
    registry = SessionRegistry()
    registry.set_qr("2@abc")
    async with TestClient(TestServer(build_status_app(registry))) as client:
        resp = await client.get("/")
        assert resp.status == 200
        assert resp.content_type == "text/html"
        assert "Scan this QR code" in await resp.text()

        registry.mark_connected()
        resp = await client.get("/")
        assert "Bot is connected ✅" in await resp.text()
