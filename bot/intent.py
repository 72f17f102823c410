from __future__ import annotations

import logging
import re
from typing import Optional

from llm.clients import LLMClient
from .agent_prompt import (
    build_anime_intent_prompt,
    build_casual_prompt,
    build_classifier_prompt,
    build_manhwa_intent_prompt,
)
from .extraction import Parsed, extract_json
from .models import Intent, ManhwaIntent, MessageType


_EPISODE_RE = re.compile(r"\bep(?:isode)?\.?\s*(\d+)", re.IGNORECASE)
_SEASON_RE = re.compile(r"\bseason\s*(\d+)", re.IGNORECASE)
_SUBTITLE_RE = re.compile(
    r"\bsubtitles?(?:\s+in)?(?:\s+(?!(?:ep|episode|season|chapter)\b)([a-zA-Z]+)\b)?", re.IGNORECASE
)
_CHAPTER_RE = re.compile(r"\b(?:chapter|chap|ch)\.?\s*(\d+)", re.IGNORECASE)

DEFAULT_CASUAL_REPLY = "👋 Send an anime title and episode number to start watching 🍿"


def _clean_title(text: str) -> str:
    title = re.sub(r"\s+", " ", text)
    return title.strip(" \t,.-:;")


def fallback_anime_intent(text: str) -> Optional[Intent]:
    """Regex extraction used when the model reply cannot be parsed.

    Recovers ``ep 12`` / ``episode 12``, ``season 2`` and ``subtitle [in] <lang>``
    and treats what is left as the title. Returns None unless both a title
    and an episode number were found.
    """
    ep = _EPISODE_RE.search(text)
    season = _SEASON_RE.search(text)
    sub = _SUBTITLE_RE.search(text)

    rest = _EPISODE_RE.sub(" ", text, count=1)
    rest = _SEASON_RE.sub(" ", rest, count=1)
    rest = _SUBTITLE_RE.sub(" ", rest, count=1)
    title = _clean_title(rest)

    if not title or not ep:
        return None
    lang = sub.group(1) if sub and sub.group(1) else None
    return Intent(
        title=title,
        season=int(season.group(1)) if season else None,
        episode=int(ep.group(1)),
        subtitle=sub is not None,
        subtitle_lang=lang,
    )


def fallback_manhwa_intent(text: str) -> Optional[ManhwaIntent]:
    ch = _CHAPTER_RE.search(text)
    title = _clean_title(_CHAPTER_RE.sub(" ", text, count=1))
    if not title or not ch:
        return None
    return ManhwaIntent(title=title, chapter=int(ch.group(1)))


class IntentClassifier:
    """LLM-driven message classification and intent extraction."""

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm
        self.log = logging.getLogger("kirobot.intent")

    async def classify(self, text: str) -> MessageType:
        result = extract_json(await self.llm.agenerate(build_classifier_prompt(text)))
        if not isinstance(result, Parsed):
            self.log.warning("message type unparsable: %s", result.reason)
            return MessageType.UNKNOWN
        kind = MessageType.coerce(result.value.get("type"))
        self.log.info("message type", extra={"type": kind.value})
        return kind

    async def parse_anime_intent(self, text: str) -> Optional[Intent]:
        self.log.info("user message", extra={"text": text})
        result = extract_json(await self.llm.agenerate(build_anime_intent_prompt(text)))
        if isinstance(result, Parsed):
            intent = Intent.from_payload(result.value)
            self.log.info("parsed intent", extra={"intent": intent.__dict__})
            return intent

        self.log.warning("anime intent unparsable (%s); trying regex fallback", result.reason)
        fallback = fallback_anime_intent(text)
        if fallback is not None:
            self.log.info("fallback intent", extra={"intent": fallback.__dict__})
        return fallback

    async def parse_manhwa_intent(self, text: str) -> Optional[ManhwaIntent]:
        result = extract_json(await self.llm.agenerate(build_manhwa_intent_prompt(text)))
        if isinstance(result, Parsed):
            return ManhwaIntent.from_payload(result.value)
        self.log.warning("manhwa intent unparsable (%s); trying regex fallback", result.reason)
        return fallback_manhwa_intent(text)

    async def general_reply(self, text: str) -> str:
        reply = (await self.llm.agenerate(build_casual_prompt(text))).strip()
        return reply or DEFAULT_CASUAL_REPLY
