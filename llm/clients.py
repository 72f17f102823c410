from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from config.loader import DEFAULT_LLM_BASE_URL, DEFAULT_LLM_MODEL


@dataclass
class LLMConfig:
    api_key: str
    model: str = DEFAULT_LLM_MODEL
    base_url: str = DEFAULT_LLM_BASE_URL
    params: Dict[str, Any] = field(default_factory=dict)


class LLMClient:
    """Text-generation client for the Gemini OpenAI-compatible endpoint.

    ``achat`` is the raw Chat Completions call; ``agenerate`` is the single
    prompt-in, text-out helper the bot uses everywhere and never raises.
    """

    def __init__(self, api_key: str, *, model: str = DEFAULT_LLM_MODEL, base_url: Optional[str] = None,
                 params: Optional[Dict[str, Any]] = None):
        self.model = model
        self.params = dict(params or {})
        self.async_client = AsyncOpenAI(api_key=api_key or "missing", base_url=base_url or DEFAULT_LLM_BASE_URL)
        self.log = logging.getLogger("kirobot.llm")

    @classmethod
    def from_selection(cls, api_key: str, selection: Dict[str, Any]) -> "LLMClient":
        return cls(
            api_key,
            model=str(selection.get("model") or DEFAULT_LLM_MODEL),
            base_url=selection.get("baseUrl"),
            params=selection.get("params") or {},
        )

    def _normalize_params(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Coerce alternate token-limit keys to ``max_tokens``."""
        out = dict(params)
        for k in ("max_response_tokens", "max_output_tokens", "max_completion_tokens"):
            if k in out:
                if "max_tokens" not in out:
                    out["max_tokens"] = out[k]
                out.pop(k, None)
        return out

    async def achat(self, *, model: str, messages: List[Dict[str, Any]], **kwargs: Any) -> Any:
        params: Dict[str, Any] = {"model": model, "messages": messages}
        params.update(self._normalize_params({**self.params, **kwargs}))
        return await self.async_client.chat.completions.create(**params)

    async def agenerate(self, prompt: str) -> str:
        """Send one user prompt and return the reply text, or "" on any failure."""
        try:
            resp = await self.achat(model=self.model, messages=[{"role": "user", "content": prompt}])
            return _extract_text(resp)
        except Exception as e:  # noqa: BLE001
            self.log.warning("generation call failed: %s", e)
            return ""


def _extract_text(response: Any) -> str:
    # Works for both SDK objects and plain dicts
    try:
        if isinstance(response, dict):
            choices = response.get("choices", [])
            if choices and isinstance(choices[0], dict):
                return str(choices[0].get("message", {}).get("content") or "")
            return ""
        if hasattr(response, "choices") and response.choices:
            message = response.choices[0].message
            if isinstance(message, dict):
                return str(message.get("content") or "")
            return str(getattr(message, "content", "") or "")
    except Exception:
        return ""
    return ""
