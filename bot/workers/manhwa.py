from __future__ import annotations

import asyncio
import logging
import re
from typing import List, Optional
from urllib.parse import urlparse

from PIL import Image

from integrations.kiroflix_client import KiroflixClient
from ux.progress import StatusMessage
from ..intent import IntentClassifier
from ..models import Chapter, ManhwaDetails, format_number
from ..pdf_builder import PageLayout, build_pdf, normalize_image
from ..resolver import CatalogResolver
from ..selector import select_chapter
from ..transport import ChatTransport


CLARIFY_MANHWA = "❌ Could not detect manhwa title. Send the title and chapter, e.g. 'solo leveling chapter 3'"


def chapter_path(url: str, host_marker: str = "asuracomic.net/") -> str:
    """Path the chapter-images backend expects for a chapter URL."""
    if host_marker and host_marker in url:
        return url.split(host_marker, 1)[1]
    parsed = urlparse(url)
    return parsed.path.lstrip("/") if parsed.netloc else url


def _or_na(value) -> str:
    if value is None or value == "":
        return "N/A"
    return str(value)


def build_caption(details: ManhwaDetails, chapter: Chapter, *, synopsis_chars: int = 200,
                  requested: Optional[int] = None) -> str:
    synopsis = details.synopsis or ""
    if len(synopsis) > synopsis_chars:
        synopsis = synopsis[:synopsis_chars].rstrip() + "..."
    lines = []
    if requested is not None:
        lines.append(f"⚠️ Chapter {requested} is not available. Here is the latest 👇\n")
    lines += [
        f"📖 *{details.title}*",
        f"⭐ Score: {_or_na(details.score)}",
        f"📌 Status: {_or_na(details.status)}",
        f"📚 Chapter: {chapter.name or format_number(chapter.number)}",
        f"🖊 Author: {_or_na(details.author)}",
        f"🏷 Genres: {', '.join(details.genres) if details.genres else 'N/A'}",
    ]
    if synopsis:
        lines += ["", f"🔥 {synopsis}"]
    return "\n".join(lines)


def pdf_filename(title: str, chapter: Chapter) -> str:
    label = chapter.name or f"Chapter {format_number(chapter.number)}"
    name = re.sub(r'[\\/:*?"<>|]+', "", f"{title} - {label}").strip()
    return f"{name or 'chapter'}.pdf"


class ManhwaWorker:
    """Manhwa chapter pipeline: resolve chapter, download pages, build and send a PDF."""

    def __init__(
        self,
        client: KiroflixClient,
        classifier: IntentClassifier,
        resolver: CatalogResolver,
        *,
        layout: Optional[PageLayout] = None,
        progress_every: int = 2,
        chapter_host: str = "asuracomic.net/",
        synopsis_chars: int = 200,
    ) -> None:
        self.client = client
        self.classifier = classifier
        self.resolver = resolver
        self.layout = layout or PageLayout()
        self.progress_every = progress_every
        self.chapter_host = chapter_host
        self.synopsis_chars = synopsis_chars
        self.log = logging.getLogger("kirobot.manhwa")

    async def download_pages(self, urls: List[str], status: StatusMessage) -> List[bytes]:
        pages: List[bytes] = []
        total = len(urls)
        for i, url in enumerate(urls, start=1):
            data = await self.client.fetch_image(url)
            if data:
                pages.append(data)
            else:
                self.log.warning("page %d/%d dropped", i, total, extra={"url": url})
            await status.step("📥 Downloading pages", i, total, self.progress_every)
        return pages

    async def normalize_pages(self, raw_pages: List[bytes], status: StatusMessage) -> List[Image.Image]:
        strips: List[Image.Image] = []
        total = len(raw_pages)
        for i, data in enumerate(raw_pages, start=1):
            try:
                strips.extend(await asyncio.to_thread(normalize_image, data, self.layout))
            except Exception as e:  # noqa: BLE001
                self.log.warning("page %d/%d could not be decoded: %s", i, total, e)
            await status.step("🛠 Processing pages", i, total, self.progress_every)
        return strips

    async def handle(self, chat_id: str, text: str, status: StatusMessage, transport: ChatTransport) -> None:
        intent = await self.classifier.parse_manhwa_intent(text)
        if intent is None or intent.not_found:
            await status.update(CLARIFY_MANHWA)
            return

        await status.update("📚 Searching manhwa...")
        results = await self.client.search_manhwa(intent.title)
        if not results:
            await status.update("❌ Manhwa not found")
            return

        manhwa = await self.resolver.select_best_manhwa(intent, results)
        details = await self.client.manhwa_details(manhwa.id)
        if details is None:
            await status.update("❌ Failed to load details")
            return
        if not details.chapters:
            await status.update("❌ No chapters available")
            return

        selection = select_chapter(details.chapters, intent.chapter)
        chapter = selection.item
        images = await self.client.chapter_images(chapter_path(chapter.url, self.chapter_host))
        if not images:
            await status.update("❌ Chapter images unavailable")
            return

        raw_pages = await self.download_pages(images, status)
        if not raw_pages:
            await status.update("❌ Could not download chapter images")
            return

        strips = await self.normalize_pages(raw_pages, status)
        if not strips:
            await status.update("❌ Could not process chapter images")
            return

        await status.update(f"📄 Building PDF ({len(strips)} pages)...")
        pdf_bytes = await asyncio.to_thread(build_pdf, strips)

        caption = build_caption(
            details, chapter, synopsis_chars=self.synopsis_chars,
            requested=None if selection.exact else intent.chapter,
        )
        await transport.send_document(chat_id, pdf_bytes, filename=pdf_filename(details.title, chapter),
                                      caption=caption)
        await status.update("✅ Chapter sent 📚")
        await self.client.log_usage(user_jid=chat_id, username=chat_id, user_message=text, ai_reply=caption)
