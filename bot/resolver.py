from __future__ import annotations

import logging
from typing import Optional, Sequence

from llm.clients import LLMClient
from .agent_prompt import build_match_prompt
from .extraction import first_token
from .models import CatalogEntry


NUMERIC_ID = r"\d+"
SLUG_ID = r"[a-z0-9\-]+"


class CatalogResolver:
    """Pick the best catalog entry for a title with the LLM, degrading to the first result."""

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm
        self.log = logging.getLogger("kirobot.resolver")

    async def select_best(self, title: str, candidates: Sequence[CatalogEntry], *, season: Optional[int] = None,
                          id_pattern: str = NUMERIC_ID) -> Optional[CatalogEntry]:
        if not candidates:
            return None
        minimal = [{"id": c.id, "title": c.title} for c in candidates]
        self.log.debug("match input", extra={"candidates": minimal})
        try:
            reply = await self.llm.agenerate(build_match_prompt(title, minimal, season))
            chosen = first_token(reply.lower() if id_pattern == SLUG_ID else reply, id_pattern)
        except Exception as e:  # noqa: BLE001
            self.log.warning("match failed, using first result: %s", e)
            return candidates[0]

        if not chosen:
            self.log.info("no id in match reply, using first result")
            return candidates[0]
        for c in candidates:
            if c.id == chosen:
                self.log.info("match result", extra={"entry_id": c.id, "entry_title": c.title})
                return c
        self.log.info("matched id %s not among candidates, using first result", chosen)
        return candidates[0]

    async def select_best_anime(self, intent, candidates: Sequence[CatalogEntry]) -> Optional[CatalogEntry]:
        return await self.select_best(intent.title, candidates, season=intent.season, id_pattern=NUMERIC_ID)

    async def select_best_manhwa(self, intent, candidates: Sequence[CatalogEntry]) -> Optional[CatalogEntry]:
        return await self.select_best(intent.title, candidates, id_pattern=SLUG_ID)
