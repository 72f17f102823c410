from __future__ import annotations

import asyncio
import logging
import re
from typing import List, Optional, Tuple

from integrations.kiroflix_client import KiroflixClient
from ux.progress import StatusMessage
from ..models import SubtitleJob
from ..transport import ChatTransport


DEFAULT_CHUNK_SIZE = 100


def partition_lines(total: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[Tuple[int, int]]:
    """Consecutive inclusive ``(start, end)`` line ranges covering ``total`` lines."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return [(start, min(start + chunk_size - 1, total - 1)) for start in range(0, max(total, 0), chunk_size)]


class SubtitleWorker:
    """Generates a translated subtitle track chunk by chunk on the remote translator."""

    def __init__(self, client: KiroflixClient, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.client = client
        self.chunk_size = chunk_size
        self.log = logging.getLogger("kirobot.subtitles")

    async def find_existing(self, episode_id: str, lang: str) -> Optional[dict]:
        subs = await self.client.list_subtitles(episode_id)
        wanted = lang.lower()
        for s in subs:
            if str(s.get("lang") or s.get("language") or "").lower() == wanted:
                return s
        return None

    async def _translate(self, job: SubtitleJob, index: int, lang: str, episode_id: str,
                         progress: StatusMessage) -> None:
        start, end = job.chunks[index]
        try:
            job.results[index] = await self.client.translate_chunk(
                lang=lang, episode_id=episode_id, start_line=start, end_line=end
            )
        except Exception as e:  # noqa: BLE001
            self.log.warning("chunk %d failed: %s", index, e, extra={"start_line": start, "end_line": end})
            job.results[index] = ""

        job.completed += 1
        await progress.update(f"🎯 Generating {lang} subtitle... {job.percent()}%")

    async def generate_subtitle(self, chat_id: str, episode_id: str, lang: str,
                                transport: ChatTransport) -> Optional[str]:
        progress = await StatusMessage.open(transport, chat_id, f"🎯 Generating {lang} subtitle... 0%")

        try:
            vtt_text = await self.client.fetch_base_subtitle(episode_id)
            if not vtt_text or not vtt_text.strip():
                await progress.update("⚠️ No base subtitle available for this episode")
                return None

            lines = re.split(r"\r?\n", vtt_text)
            job = SubtitleJob(chunks=partition_lines(len(lines), self.chunk_size))
            self.log.info("subtitle job", extra={"episode_id": episode_id, "lines": len(lines), "chunks": job.total})

            await asyncio.gather(*[
                self._translate(job, i, lang, episode_id, progress) for i in range(job.total)
            ])

            filename = f"{lang.lower()}.vtt"
            await self.client.save_subtitle(episode_id=episode_id, filename=filename, content=job.assemble())
            url = self.client.subtitle_url(episode_id, filename)
            await self.client.store_subtitle(episode_id=episode_id, language=lang, subtitle_url=url)
        except Exception as e:  # noqa: BLE001
            self.log.error("subtitle generation failed: %s", e)
            await progress.update(f"❌ Failed to generate {lang} subtitle")
            return None

        await progress.update(f"✅ {lang} subtitle ready!\n{url}")
        return url
