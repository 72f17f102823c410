from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from config.loader import DEFAULT_ENDPOINTS
from bot.models import CatalogEntry, Episode, ManhwaDetails, StreamResult


USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36"


def _list_field(data: Any, key: str) -> List[Any]:
    """``data[key]`` when the payload is an object holding a list there, else []."""
    if not isinstance(data, dict):
        return []
    value = data.get(key)
    return value if isinstance(value, list) else []


class KiroflixClient:
    """Client for the Kiroflix catalog, stream, subtitle and manhwa backends.

    Lookup calls (search, episodes, details, chapter images, subtitle listing)
    log and return an empty result on failure. Stream and subtitle pipeline
    calls raise so that the caller's retry/failure handling sees the error.
    """

    def __init__(self, endpoints: Optional[Dict[str, str]] = None, *, timeout: float = 20.0):
        self.endpoints = {**DEFAULT_ENDPOINTS, **(endpoints or {})}
        self.timeout = timeout
        self.log = logging.getLogger("kirobot.catalog")

    def _new_client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            timeout=timeout if timeout is not None else self.timeout,
            follow_redirects=True,
        )

    async def _get_json(self, key: str, params: Dict[str, Any]) -> Any:
        async with self._new_client() as client:
            r = await client.get(self.endpoints[key], params=params)
            r.raise_for_status()
            return r.json()

    # Anime catalog
    async def search_anime(self, title: str) -> List[CatalogEntry]:
        try:
            data = await self._get_json("animeSearch", {"q": title})
        except (httpx.HTTPError, ValueError) as e:
            self.log.warning("anime search failed: %s", e)
            return []
        results = _list_field(data, "results")
        self.log.info("anime search", extra={"query": title, "count": len(results)})
        return [CatalogEntry.from_api(r) for r in results if isinstance(r, dict)]

    async def get_episodes(self, anime_id: str) -> List[Episode]:
        try:
            data = await self._get_json("episodes", {"id": anime_id})
        except (httpx.HTTPError, ValueError) as e:
            self.log.warning("episodes fetch failed for %s: %s", anime_id, e)
            return []
        episodes = _list_field(data, "episodes")
        self.log.info("episodes", extra={"anime_id": anime_id, "count": len(episodes)})
        return [Episode.from_api(e) for e in episodes if isinstance(e, dict)]

    def player_url(self, episode_id: str) -> str:
        return str(httpx.URL(self.endpoints["player"], params={"episode_id": episode_id}))

    async def generate_stream(self, episode_id: str, *, timeout: float = 40.0) -> Optional[StreamResult]:
        """Single stream-generation attempt; None when the backend reports no success."""
        async with self._new_client(timeout) as client:
            r = await client.get(self.endpoints["generateStream"], params={"episode_id": episode_id})
            r.raise_for_status()
            data = r.json()
        if not isinstance(data, dict) or not data.get("success"):
            return None
        return StreamResult(
            player=self.player_url(episode_id),
            master=data.get("master"),
            subtitle=data.get("subtitle"),
        )

    # Subtitles
    async def list_subtitles(self, episode_id: str) -> List[Dict[str, Any]]:
        try:
            data = await self._get_json("subtitleList", {"episode_id": episode_id})
        except (httpx.HTTPError, ValueError) as e:
            self.log.warning("subtitle listing failed for %s: %s", episode_id, e)
            return []
        if isinstance(data, dict):
            data = _list_field(data, "subtitles") or _list_field(data, "results")
        if not isinstance(data, list):
            return []
        return [s for s in data if isinstance(s, dict)]

    async def fetch_base_subtitle(self, episode_id: str) -> str:
        async with self._new_client() as client:
            r = await client.get(self.endpoints["vttReader"], params={"episode_id": episode_id})
            r.raise_for_status()
            return r.text or ""

    async def translate_chunk(self, *, lang: str, episode_id: str, start_line: int, end_line: int) -> str:
        payload = {"lang": lang, "episode_id": episode_id, "start_line": start_line, "end_line": end_line}
        async with self._new_client() as client:
            r = await client.post(self.endpoints["translateChunk"], json=payload)
            r.raise_for_status()
            return (r.text or "").strip()

    def subtitle_url(self, episode_id: str, filename: str) -> str:
        return f"{self.endpoints['subtitleBase'].rstrip('/')}/{episode_id}/{filename}"

    async def save_subtitle(self, *, episode_id: str, filename: str, content: str) -> None:
        async with self._new_client() as client:
            r = await client.post(
                self.endpoints["saveSubtitle"],
                json={"episode_id": episode_id, "filename": filename, "content": content},
            )
            r.raise_for_status()

    async def store_subtitle(self, *, episode_id: str, language: str, subtitle_url: str) -> None:
        async with self._new_client() as client:
            r = await client.post(
                self.endpoints["storeSubtitle"],
                json={"episode_id": episode_id, "language": language, "subtitle_url": subtitle_url},
            )
            r.raise_for_status()

    # Usage log
    async def log_usage(self, *, user_jid: str, username: str, user_message: str, ai_reply: str,
                        country: str = "Unknown") -> None:
        payload = {
            "user_jid": user_jid,
            "username": username,
            "user_message": user_message,
            "ai_reply": ai_reply,
            "country": country,
            "date": datetime.now(timezone.utc).isoformat(),
        }
        try:
            async with self._new_client() as client:
                r = await client.post(self.endpoints["usageLog"], json=payload)
                r.raise_for_status()
        except httpx.HTTPError as e:
            self.log.warning("failed to log usage: %s", e)

    # Manhwa
    async def search_manhwa(self, title: str) -> List[CatalogEntry]:
        try:
            data = await self._get_json("manhwaSearch", {"q": title})
        except (httpx.HTTPError, ValueError) as e:
            self.log.warning("manhwa search failed: %s", e)
            return []
        results = _list_field(data, "results")
        self.log.info("manhwa search", extra={"query": title, "count": len(results)})
        return [CatalogEntry.from_api(r) for r in results if isinstance(r, dict)]

    async def manhwa_details(self, manhwa_id: str) -> Optional[ManhwaDetails]:
        try:
            data = await self._get_json("manhwaDetails", {"id": manhwa_id})
        except (httpx.HTTPError, ValueError) as e:
            self.log.warning("manhwa details failed for %s: %s", manhwa_id, e)
            return None
        details = data.get("data") if isinstance(data, dict) else None
        if not isinstance(details, dict):
            return None
        return ManhwaDetails.from_api(details)

    async def chapter_images(self, chapter_path: str) -> List[str]:
        try:
            data = await self._get_json("chapterImages", {"chapter": chapter_path})
        except (httpx.HTTPError, ValueError) as e:
            self.log.warning("chapter images failed for %s: %s", chapter_path, e)
            return []
        return [str(u) for u in _list_field(data, "images") if u]

    async def fetch_image(self, url: str) -> Optional[bytes]:
        """Download an image, retrying once through the image proxy. None if both fail."""
        async with self._new_client() as client:
            try:
                r = await client.get(url)
                r.raise_for_status()
                return r.content
            except httpx.HTTPError as e:
                self.log.info("direct image fetch failed, using proxy: %s", e)
            try:
                r = await client.get(self.endpoints["imageProxy"], params={"url": url})
                r.raise_for_status()
                return r.content
            except httpx.HTTPError as e:
                self.log.warning("image dropped after proxy failure: %s", e)
                return None
