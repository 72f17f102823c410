from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv


DEFAULT_LLM_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_LLM_MODEL = "gemma-3-27b-it"

DEFAULT_ENDPOINTS = {
    "animeSearch": "https://kiroflix.site/backend/anime_search.php",
    "episodes": "https://kiroflix.site/backend/episodes_proxy.php",
    "generateStream": "https://kiroflix.cu.ma/generate/generate_episode.php",
    "player": "https://kiroflix.cu.ma/generate/player/",
    "subtitleList": "https://kiroflix.cu.ma/generate/getsubs.php",
    "vttReader": "https://kiroflix.site/backend/vttreader.php",
    "translateChunk": "https://kiroflix.cu.ma/generate/translate_chunk.php",
    "saveSubtitle": "https://kiroflix.cu.ma/generate/save_subtitle.php",
    "storeSubtitle": "https://kiroflix.site/backend/store_subtitle.php",
    "subtitleBase": "https://kiroflix.cu.ma/generate/episodes",
    "usageLog": "https://kiroflix.site/backend/log_wa_usage.php",
    "manhwaSearch": "https://kiroflix.site/backend/manga_search.php",
    "manhwaDetails": "https://kiroflix.site/backend/manga-details.php",
    "chapterImages": "https://kiroflix.site/backend/fetch_chapter.php",
    "imageProxy": "https://kiroflix.site/backend/image_proxy.php",
}


@dataclass
class Settings:
    gemini_api_key: Optional[str]
    port: int = 3000
    log_level: str = "INFO"
    session_db: str = "auth/session.sqlite3"


def load_settings(project_root: Path) -> Settings:
    env_path = project_root / ".env"
    load_dotenv(env_path)

    try:
        port = int(os.getenv("PORT", "3000"))
    except ValueError:
        port = 3000

    return Settings(
        gemini_api_key=os.getenv("GEMINI_KEY") or os.getenv("GEMINI_API_KEY"),
        port=port,
        log_level=os.getenv("KIROBOT_LOG_LEVEL", "INFO"),
        session_db=os.getenv("WHATSAPP_SESSION_DB", str(project_root / "auth" / "session.sqlite3")),
    )


def load_runtime_config(project_root: Path) -> dict:
    config_path = project_root / "config" / "config.yaml"
    if not config_path.exists():
        return {}
    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def section(rc: dict, name: str) -> dict:
    """Return a config section as a dict, tolerating missing or null sections."""
    value = rc.get(name) if isinstance(rc, dict) else None
    return value if isinstance(value, dict) else {}


def resolve_endpoints(rc: dict) -> dict[str, str]:
    endpoints = dict(DEFAULT_ENDPOINTS)
    for key, value in section(rc, "endpoints").items():
        if value:
            endpoints[str(key)] = str(value)
    return endpoints


def resolve_llm_selection(project_root: Path, rc: dict | None = None) -> dict:
    """Return the text-generation selection.

    Selection is a dict with:
      - model: str
      - baseUrl: str (OpenAI-compatible endpoint)
      - params: dict[str, Any] of extra request params (e.g., temperature)

    Accepts either ``llm.model: "name"`` or ``llm.model: {name, params}``.
    """
    if rc is None:
        rc = load_runtime_config(project_root)
    llm_cfg = section(rc, "llm")
    raw = llm_cfg.get("model")
    params = dict(llm_cfg.get("params", {}) or {})
    if isinstance(raw, dict):
        model = raw.get("name") or raw.get("model") or raw.get("id")
        params.update(raw.get("params", {}) or {})
    else:
        model = raw
    return {
        "model": str(model) if model else DEFAULT_LLM_MODEL,
        "baseUrl": str(llm_cfg.get("baseUrl") or DEFAULT_LLM_BASE_URL),
        "params": params,
    }


def is_config_complete(settings: Settings) -> bool:
    key = settings.gemini_api_key
    return key is not None and str(key).strip() != ""
