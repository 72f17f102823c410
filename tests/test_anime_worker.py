import pytest
from unittest.mock import AsyncMock, Mock

from bot.models import CatalogEntry, Episode, Intent, StreamResult
from bot.retry import RetryPolicy
from bot.workers.anime import AnimeWorker
from ux.progress import StatusMessage


PLAYER = "https://kiroflix.cu.ma/generate/player/?episode_id=ep-5"


async def no_sleep(_s):
    return None


def make_worker(poster="https://img/op.jpg", stream=StreamResult(player=PLAYER)):
    client = Mock()
    client.search_anime = AsyncMock(return_value=[CatalogEntry(id="21", title="One Piece", poster=poster)])
    client.get_episodes = AsyncMock(return_value=[
        Episode(id="ep-4", number=4, title="Luffy's Past"),
        Episode(id="ep-5", number=5, title="Fear, Mysterious Power"),
    ])
    client.generate_stream = AsyncMock(return_value=stream)
    client.log_usage = AsyncMock()

    resolver = Mock()
    resolver.select_best_anime = AsyncMock(side_effect=lambda intent, results: results[0])
    subtitles = Mock()
    subtitles.find_existing = AsyncMock(return_value=None)
    subtitles.generate_subtitle = AsyncMock(return_value="https://subs/ep-5/arabic.vtt")

    worker = AnimeWorker(client, resolver, subtitles, retry=RetryPolicy(max_attempts=3, delay_s=2.0, sleep=no_sleep))
    return worker, client, subtitles


async def open_status(transport, chat_id="123@s.whatsapp.net"):
    return await StatusMessage.open(transport, chat_id, "🤔 Thinking...")


@pytest.mark.asyncio
async def test_episode_request_sends_poster_with_player_link(transport):
    worker, client, subtitles = make_worker()
    status = await open_status(transport)

    await worker.handle("123@s.whatsapp.net", Intent(title="One Piece", episode=5), "one piece episode 5",
                        status, transport)

    images = transport.of_kind("image")
    assert len(images) == 1
    assert images[0]["image"] == "https://img/op.jpg"
    caption = images[0]["caption"]
    assert "🎬 One Piece" in caption
    assert "📺 Episode 5: Fear, Mysterious Power" in caption
    assert PLAYER in caption
    assert "not released" not in caption

    assert transport.edit_texts() == ["🍿 Finding your episode...", "🎬 Generating stream...", "✅ Enjoy the episode 🍿"]
    client.generate_stream.assert_awaited_once_with("ep-5", timeout=40.0)
    client.log_usage.assert_awaited_once()
    subtitles.find_existing.assert_not_awaited()


@pytest.mark.asyncio
async def test_unreleased_episode_falls_back_to_latest(transport):
    worker, client, _ = make_worker(poster=None)
    status = await open_status(transport)

    await worker.handle("c1", Intent(title="One Piece", episode=1200), "one piece ep 1200", status, transport)

    client.generate_stream.assert_awaited_once_with("ep-5", timeout=40.0)
    final = transport.edit_texts()[-1]
    assert final.startswith("⚠️ Episode 1200 is not released yet.\nHere is the latest available 👇")
    assert "📺 Episode 5" in final
    assert transport.of_kind("image") == []


@pytest.mark.asyncio
async def test_stream_failure_after_three_attempts(transport):
    worker, client, _ = make_worker(stream=None)
    status = await open_status(transport)

    await worker.handle("c1", Intent(title="One Piece", episode=5), "one piece episode 5", status, transport)

    assert client.generate_stream.await_count == 3
    assert transport.edit_texts()[-1] == "❌ Could not generate stream"
    client.log_usage.assert_not_awaited()


@pytest.mark.asyncio
async def test_search_and_episode_failures(transport):
    worker, client, _ = make_worker()
    client.search_anime.return_value = []
    status = await open_status(transport)
    await worker.handle("c1", Intent(title="Nope", episode=1), "nope ep 1", status, transport)
    assert transport.edit_texts()[-1] == "❌ Anime not found"

    client.search_anime.return_value = [CatalogEntry(id="21", title="One Piece")]
    client.get_episodes.return_value = []
    await worker.handle("c1", Intent(title="One Piece", episode=1), "one piece ep 1", status, transport)
    assert transport.edit_texts()[-1] == "❌ Episodes unavailable"
    client.generate_stream.assert_not_awaited()


@pytest.mark.asyncio
async def test_unexpected_error_reports_failure(transport):
    worker, client, _ = make_worker()
    client.get_episodes.side_effect = RuntimeError("boom")
    status = await open_status(transport)

    await worker.handle("c1", Intent(title="One Piece", episode=5), "one piece episode 5", status, transport)

    assert transport.sent[-1]["text"] == "⚠️ Failed to load episode"


@pytest.mark.asyncio
async def test_subtitle_request_generates_missing_track(transport):
    worker, _, subtitles = make_worker()
    status = await open_status(transport)
    intent = Intent(title="One Piece", episode=5, subtitle=True, subtitle_lang="Arabic")

    await worker.handle("c1", intent, "one piece episode 5 subtitle arabic", status, transport)

    subtitles.find_existing.assert_awaited_once_with("ep-5", "Arabic")
    subtitles.generate_subtitle.assert_awaited_once_with("c1", "ep-5", "Arabic", transport)


@pytest.mark.asyncio
async def test_subtitle_already_available_is_linked(transport):
    worker, _, subtitles = make_worker()
    subtitles.find_existing.return_value = {"lang": "English", "url": "https://subs/ep-5/english.vtt"}
    status = await open_status(transport)
    intent = Intent(title="One Piece", episode=5, subtitle=True)

    await worker.handle("c1", intent, "one piece episode 5 with subtitles", status, transport)

    subtitles.find_existing.assert_awaited_once_with("ep-5", "English")
    subtitles.generate_subtitle.assert_not_awaited()
    assert transport.sent[-1]["text"] == "🎯 Subtitle already available: English\nhttps://subs/ep-5/english.vtt"


def test_caption_formats_fractional_episode_numbers():
    caption = AnimeWorker.build_caption("Show", "12.5", "Recap", "https://p")
    assert "📺 Episode 12.5: Recap" in caption
    assert AnimeWorker.build_caption("Show", 3.0, "T", "https://p").count("Episode 3:") == 1
