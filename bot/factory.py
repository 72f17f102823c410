from __future__ import annotations

from pathlib import Path
from typing import Optional

from config.loader import (
    Settings,
    load_runtime_config,
    load_settings,
    resolve_endpoints,
    resolve_llm_selection,
    section,
)
from integrations.kiroflix_client import KiroflixClient
from llm.clients import LLMClient
from .dispatcher import Dispatcher
from .intent import IntentClassifier
from .pdf_builder import PageLayout
from .resolver import CatalogResolver
from .retry import RetryPolicy
from .session import SessionRegistry
from .transport import ChatTransport
from .workers.anime import AnimeWorker
from .workers.manhwa import ManhwaWorker
from .workers.subtitles import SubtitleWorker


def build_dispatcher(
    project_root: Path,
    transport: ChatTransport,
    registry: SessionRegistry,
    *,
    settings: Optional[Settings] = None,
    rc: Optional[dict] = None,
) -> Dispatcher:
    """Wire the pipeline from ``.env`` settings and ``config/config.yaml``."""
    settings = settings or load_settings(project_root)
    rc = load_runtime_config(project_root) if rc is None else rc

    stream_cfg = section(rc, "stream")
    subs_cfg = section(rc, "subtitles")
    manhwa_cfg = section(rc, "manhwa")
    bot_cfg = section(rc, "bot")
    http_cfg = section(rc, "http")

    llm = LLMClient.from_selection(settings.gemini_api_key or "", resolve_llm_selection(project_root, rc))
    client = KiroflixClient(resolve_endpoints(rc), timeout=float(http_cfg.get("timeoutS", 20)))
    classifier = IntentClassifier(llm)
    resolver = CatalogResolver(llm)

    subtitles = SubtitleWorker(client, chunk_size=int(subs_cfg.get("chunkSize", 100)))
    anime = AnimeWorker(
        client,
        resolver,
        subtitles,
        retry=RetryPolicy(
            max_attempts=int(stream_cfg.get("maxAttempts", 3)),
            delay_s=float(stream_cfg.get("retryDelayS", 2)),
        ),
        stream_timeout_s=float(stream_cfg.get("timeoutS", 40)),
        default_subtitle_lang=str(subs_cfg.get("defaultLanguage", "English")),
    )
    manhwa = ManhwaWorker(
        client,
        classifier,
        resolver,
        layout=PageLayout(
            target_width=int(manhwa_cfg.get("targetWidth", 800)),
            max_page_height=int(manhwa_cfg.get("maxPageHeight", 2400)),
            jpeg_quality=int(manhwa_cfg.get("jpegQuality", 85)),
        ),
        progress_every=int(manhwa_cfg.get("progressEvery", 2)),
        chapter_host=str(manhwa_cfg.get("chapterHost", "asuracomic.net/")),
        synopsis_chars=int(manhwa_cfg.get("synopsisChars", 200)),
    )
    return Dispatcher(
        transport,
        registry,
        classifier,
        anime,
        manhwa,
        client,
        group_command=str(bot_cfg.get("groupCommand", "/stream")),
    )
