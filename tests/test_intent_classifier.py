import pytest
from unittest.mock import AsyncMock, patch

from bot.intent import DEFAULT_CASUAL_REPLY, IntentClassifier, fallback_anime_intent, fallback_manhwa_intent
from bot.models import MessageType
from llm.clients import LLMClient


def make_classifier():
    return IntentClassifier(LLMClient("test-key"))


@pytest.mark.asyncio
async def test_classify_reads_type_from_fenced_json():
    c = make_classifier()
    with patch.object(c.llm, "agenerate", new_callable=AsyncMock) as mock_gen:
        mock_gen.return_value = '```json\n{"type": "anime"}\n```'
        assert await c.classify("one piece episode 5") is MessageType.ANIME
        assert "one piece episode 5" in mock_gen.call_args.args[0]


@pytest.mark.asyncio
async def test_classify_unknown_on_garbage_or_bad_type():
    c = make_classifier()
    with patch.object(c.llm, "agenerate", new_callable=AsyncMock) as mock_gen:
        mock_gen.return_value = ""
        assert await c.classify("hi") is MessageType.UNKNOWN
        mock_gen.return_value = '{"type": "podcast"}'
        assert await c.classify("hi") is MessageType.UNKNOWN


@pytest.mark.asyncio
async def test_parse_anime_intent_from_model():
    c = make_classifier()
    with patch.object(c.llm, "agenerate", new_callable=AsyncMock) as mock_gen:
        mock_gen.return_value = (
            '{"title":"One Piece","season":null,"episode":5,"subtitle":false,"subtitleLang":null,"notFound":false}'
        )
        intent = await c.parse_anime_intent("one piece episode 5")
    assert intent.title == "One Piece"
    assert intent.episode == 5
    assert intent.season is None
    assert intent.not_found is False


@pytest.mark.asyncio
async def test_parse_anime_intent_not_found_is_kept():
    c = make_classifier()
    with patch.object(c.llm, "agenerate", new_callable=AsyncMock) as mock_gen:
        mock_gen.return_value = '{"notFound": true}'
        intent = await c.parse_anime_intent("asdfgh")
    assert intent.not_found is True


@pytest.mark.asyncio
async def test_parse_anime_intent_falls_back_to_regex():
    c = make_classifier()
    with patch.object(c.llm, "agenerate", new_callable=AsyncMock) as mock_gen:
        mock_gen.return_value = "I think you mean naruto"
        intent = await c.parse_anime_intent("naruto season 2 ep 12 subtitle arabic")
    assert intent.title == "naruto"
    assert intent.season == 2
    assert intent.episode == 12
    assert intent.subtitle is True
    assert intent.subtitle_lang == "arabic"


@pytest.mark.asyncio
async def test_parse_anime_intent_none_when_fallback_has_no_episode():
    c = make_classifier()
    with patch.object(c.llm, "agenerate", new_callable=AsyncMock) as mock_gen:
        mock_gen.return_value = ""
        assert await c.parse_anime_intent("naruto") is None


def test_fallback_anime_intent_variants():
    intent = fallback_anime_intent("Bleach episode 7")
    assert (intent.title, intent.episode, intent.subtitle) == ("Bleach", 7, False)
    # "ep" must be a word on its own
    assert fallback_anime_intent("sleep 5") is None


def test_fallback_subtitle_language_skips_episode_keywords():
    for text in ("naruto subtitle ep 5", "naruto subtitles episode 5", "naruto subtitle ep5"):
        intent = fallback_anime_intent(text)
        assert (intent.title, intent.episode) == ("naruto", 5)
        assert intent.subtitle is True
        assert intent.subtitle_lang is None
    assert fallback_anime_intent("naruto ep 5 subtitle in french").subtitle_lang == "french"


@pytest.mark.asyncio
async def test_parse_manhwa_intent_model_and_fallback():
    c = make_classifier()
    with patch.object(c.llm, "agenerate", new_callable=AsyncMock) as mock_gen:
        mock_gen.return_value = '{"title": "Solo Leveling", "chapter": "3", "notFound": false}'
        intent = await c.parse_manhwa_intent("solo leveling chapter 3")
        assert (intent.title, intent.chapter) == ("Solo Leveling", 3)

        mock_gen.return_value = "oops"
        intent = await c.parse_manhwa_intent("solo leveling ch 3")
        assert (intent.title, intent.chapter) == ("solo leveling", 3)

    assert fallback_manhwa_intent("solo leveling") is None


@pytest.mark.asyncio
async def test_general_reply_uses_default_when_model_silent():
    c = make_classifier()
    with patch.object(c.llm, "agenerate", new_callable=AsyncMock) as mock_gen:
        mock_gen.return_value = "  "
        assert await c.general_reply("hello") == DEFAULT_CASUAL_REPLY
        mock_gen.return_value = "Hi 👋 send an anime + episode!"
        assert await c.general_reply("hello") == "Hi 👋 send an anime + episode!"
