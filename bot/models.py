from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class MessageType(Enum):
    CASUAL = "casual"
    ANIME = "anime"
    MANHWA = "manhwa"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value: Any) -> "MessageType":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


def coerce_number(value: Any) -> Optional[float]:
    """Numbers from the catalog arrive as ints, floats or strings like "12"."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        m = re.search(r"\d+(?:\.\d+)?", str(value))
        return float(m.group(0)) if m else None


def format_number(value: Any) -> str:
    n = coerce_number(value)
    if n is None:
        return str(value)
    return str(int(n)) if n.is_integer() else str(n)


@dataclass
class Intent:
    title: str = ""
    season: Optional[int] = None
    episode: int = 1
    subtitle: bool = False
    subtitle_lang: Optional[str] = None
    not_found: bool = False

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Intent":
        if not isinstance(data, dict) or data.get("notFound"):
            return cls(not_found=True)
        title = str(data.get("title") or "").strip()
        if not title:
            return cls(not_found=True)
        episode = coerce_number(data.get("episode"))
        season = coerce_number(data.get("season"))
        lang = data.get("subtitleLang")
        return cls(
            title=title,
            season=int(season) if season is not None else None,
            episode=int(episode) if episode is not None else 1,
            subtitle=bool(data.get("subtitle")) or bool(lang),
            subtitle_lang=str(lang).strip() if lang else None,
        )


@dataclass
class ManhwaIntent:
    title: str = ""
    chapter: int = 1
    not_found: bool = False

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ManhwaIntent":
        if not isinstance(data, dict) or data.get("notFound"):
            return cls(not_found=True)
        title = str(data.get("title") or "").strip()
        if not title:
            return cls(not_found=True)
        chapter = coerce_number(data.get("chapter"))
        return cls(title=title, chapter=int(chapter) if chapter is not None else 1)


@dataclass
class CatalogEntry:
    id: str
    title: str
    poster: Optional[str] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CatalogEntry):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @classmethod
    def from_api(cls, item: Dict[str, Any], *, title_key: str = "title") -> "CatalogEntry":
        return cls(
            id=str(item.get("id", "")),
            title=str(item.get(title_key) or item.get("title") or item.get("name") or ""),
            poster=item.get("poster") or item.get("image") or None,
        )


@dataclass
class Episode:
    id: str
    number: Any
    title: str = ""

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "Episode":
        return cls(id=str(item.get("id", "")), number=item.get("number"), title=str(item.get("title") or ""))


_CHAPTER_RE = re.compile(r"chapter\s*(\d+(?:\.\d+)?)", re.IGNORECASE)


@dataclass
class Chapter:
    name: str
    url: str
    number: Any = None

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "Chapter":
        name = str(item.get("title") or item.get("name") or "")
        number = item.get("chapter_no", item.get("number"))
        if number is None:
            m = _CHAPTER_RE.search(name)
            number = m.group(1) if m else None
        return cls(name=name, url=str(item.get("url") or ""), number=number)


@dataclass
class StreamResult:
    player: str
    master: Optional[str] = None
    subtitle: Optional[str] = None


@dataclass
class ManhwaDetails:
    title: str
    score: Any = None
    status: Optional[str] = None
    author: Optional[str] = None
    genres: List[str] = field(default_factory=list)
    synopsis: str = ""
    poster: Optional[str] = None
    chapters: List[Chapter] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ManhwaDetails":
        genres = data.get("genres") or []
        if isinstance(genres, str):
            genres = [g.strip() for g in genres.split(",") if g.strip()]
        else:
            genres = [str(g.get("name") if isinstance(g, dict) else g) for g in genres]
        return cls(
            title=str(data.get("title") or ""),
            score=data.get("score", data.get("rating")),
            status=data.get("status"),
            author=data.get("author"),
            genres=genres,
            synopsis=str(data.get("synopsis") or ""),
            poster=data.get("poster"),
            chapters=[Chapter.from_api(c) for c in (data.get("chapters") or []) if isinstance(c, dict)],
        )


@dataclass
class SubtitleJob:
    chunks: List[Tuple[int, int]]
    results: List[str] = field(default_factory=list)
    completed: int = 0

    def __post_init__(self) -> None:
        if not self.results:
            self.results = [""] * len(self.chunks)

    @property
    def total(self) -> int:
        return len(self.chunks)

    def percent(self) -> int:
        if not self.chunks:
            return 100
        return (self.completed * 100) // len(self.chunks)

    def assemble(self) -> str:
        return "\n".join(self.results)
