from __future__ import annotations

import logging
from typing import Optional

from integrations.kiroflix_client import KiroflixClient
from ux.progress import StatusMessage
from ..models import Intent, StreamResult, format_number
from ..resolver import CatalogResolver
from ..retry import RetryPolicy
from ..selector import select_episode
from ..transport import ChatTransport
from .subtitles import SubtitleWorker


class AnimeWorker:
    """Anime request pipeline: search, match, pick episode, generate stream, reply."""

    def __init__(
        self,
        client: KiroflixClient,
        resolver: CatalogResolver,
        subtitles: SubtitleWorker,
        *,
        retry: Optional[RetryPolicy] = None,
        stream_timeout_s: float = 40.0,
        default_subtitle_lang: str = "English",
    ) -> None:
        self.client = client
        self.resolver = resolver
        self.subtitles = subtitles
        self.retry = retry or RetryPolicy(max_attempts=3, delay_s=2.0)
        self.stream_timeout_s = stream_timeout_s
        self.default_subtitle_lang = default_subtitle_lang
        self.log = logging.getLogger("kirobot.anime")

    async def generate_stream(self, episode_id: str) -> Optional[StreamResult]:
        return await self.retry.run(
            lambda: self.client.generate_stream(episode_id, timeout=self.stream_timeout_s),
            is_success=lambda r: r is not None,
            label="stream generation",
        )

    @staticmethod
    def build_caption(title: str, episode_number, episode_title: str, player: str,
                      requested: Optional[int] = None) -> str:
        prefix = ""
        if requested is not None:
            prefix = (
                f"⚠️ Episode {requested} is not released yet.\n"
                "Here is the latest available 👇\n\n"
            )
        return (
            f"{prefix}🎬 {title}\n"
            f"📺 Episode {format_number(episode_number)}: {episode_title}\n"
            f"▶️ {player}"
        )

    async def handle(self, chat_id: str, intent: Intent, original_text: str, status: StatusMessage,
                     transport: ChatTransport) -> None:
        try:
            await status.update("🍿 Finding your episode...")

            results = await self.client.search_anime(intent.title)
            if not results:
                await status.update("❌ Anime not found")
                return

            anime = await self.resolver.select_best_anime(intent, results)
            episodes = await self.client.get_episodes(anime.id)
            if not episodes:
                await status.update("❌ Episodes unavailable")
                return

            selection = select_episode(episodes, intent.episode)
            episode = selection.item

            await status.update("🎬 Generating stream...")
            stream = await self.generate_stream(episode.id)
            if stream is None:
                await status.update("❌ Could not generate stream")
                return

            caption = self.build_caption(
                anime.title, episode.number, episode.title, stream.player,
                requested=None if selection.exact else intent.episode,
            )
            if anime.poster:
                await transport.send_image(chat_id, anime.poster, caption)
                await status.update("✅ Enjoy the episode 🍿")
            else:
                await status.update(caption)

            await self.client.log_usage(
                user_jid=chat_id, username=chat_id, user_message=original_text, ai_reply=caption
            )

            if intent.subtitle:
                await self._handle_subtitle(chat_id, episode.id, intent.subtitle_lang or self.default_subtitle_lang,
                                            transport)
        except Exception as e:  # noqa: BLE001
            self.log.error("anime handler failed: %s", e, exc_info=True)
            await transport.send_text(chat_id, "⚠️ Failed to load episode")

    async def _handle_subtitle(self, chat_id: str, episode_id: str, lang: str, transport: ChatTransport) -> None:
        existing = await self.subtitles.find_existing(episode_id, lang)
        if existing is not None:
            label = existing.get("lang") or existing.get("language") or lang
            url = existing.get("url") or existing.get("subtitle_url")
            text = f"🎯 Subtitle already available: {label}" + (f"\n{url}" if url else "")
            await transport.send_text(chat_id, text)
            return
        await self.subtitles.generate_subtitle(chat_id, episode_id, lang, transport)
