from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, List, Optional, Sequence, TypeVar

from .models import Chapter, Episode, coerce_number


T = TypeVar("T")


@dataclass
class Selection(Generic[T]):
    item: T
    exact: bool


def _pick(items: Sequence[T], requested: object, numbers: List[Optional[float]]) -> Optional[Selection[T]]:
    if not items:
        return None
    want = coerce_number(requested)
    if want is not None:
        for item, n in zip(items, numbers):
            if n is not None and n == want:
                return Selection(item, exact=True)
    # Latest available: max numeric field, first listed when nothing is numeric
    best_idx = None
    for idx, n in enumerate(numbers):
        if n is None:
            continue
        if best_idx is None or n > numbers[best_idx]:
            best_idx = idx
    return Selection(items[best_idx if best_idx is not None else 0], exact=False)


def select_episode(episodes: Sequence[Episode], number: object) -> Optional[Selection[Episode]]:
    """Exact episode-number match, else the latest episode with ``exact=False``."""
    return _pick(episodes, number, [coerce_number(e.number) for e in episodes])


def select_chapter(chapters: Sequence[Chapter], number: object) -> Optional[Selection[Chapter]]:
    """Exact chapter-number match, else the latest chapter with ``exact=False``."""
    return _pick(chapters, number, [coerce_number(c.number) for c in chapters])
