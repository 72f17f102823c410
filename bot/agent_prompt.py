from __future__ import annotations

import json
from typing import Dict, List, Optional


class PromptComponents:
    """Fixed instructions shared by the parser and matcher prompts."""

    @staticmethod
    def json_only() -> str:
        return "- Return ONLY JSON."

    @staticmethod
    def never_guess() -> str:
        return (
            '- If you are NOT sure what title it is → return {"notFound": true}\n'
            "- NEVER guess."
        )

    @staticmethod
    def tie_break_rules() -> str:
        return (
            "RULES:\n"
            "- Prefer a case-insensitive exact title match.\n"
            "- If several entries share the same title, pick the one with the highest id (newest).\n"
            "- Reply with the id only, nothing else."
        )


def build_classifier_prompt(text: str) -> str:
    return (
        "You are a message classifier for an anime & manhwa bot.\n\n"
        "Classify the user message into ONE of these types:\n\n"
        '1️⃣ "casual" → greeting, small talk, asking how bot works\n'
        '2️⃣ "anime" → requesting anime episode/movie\n'
        '3️⃣ "manhwa" → requesting manhwa/manga chapter\n'
        '4️⃣ "unknown"\n\n'
        "Return ONLY JSON:\n\n"
        '{\n  "type": "casual" | "anime" | "manhwa" | "unknown"\n}\n\n'
        f"User: {text}\n"
    )


def build_anime_intent_prompt(text: str) -> str:
    return (
        "You are an anime title parser.\n\n"
        "GOAL:\n"
        "1️⃣ Detect the anime title from ANY language (Arabic, French, Japanese romaji, etc.)\n"
        "2️⃣ Convert it to the MOST COMMON OFFICIAL TITLE in English or Romaji.\n"
        "3️⃣ Extract season/part (if any)\n"
        "4️⃣ Extract episode number\n"
        "5️⃣ Detect a subtitle request and its language (if any)\n\n"
        "IMPORTANT BEHAVIOR:\n"
        "✅ If the user ONLY sends an anime title with NO episode number → set episode = 1\n"
        "✅ If the title is a MOVIE anime → set episode = 1\n\n"
        f"{PromptComponents.never_guess()}\n"
        f"{PromptComponents.json_only()}\n\n"
        "FORMAT:\n"
        "{\n"
        '  "title":"official anime title",\n'
        '  "season":null,\n'
        '  "episode":number,\n'
        '  "subtitle":false,\n'
        '  "subtitleLang":null,\n'
        '  "notFound":false\n'
        "}\n\n"
        f"User: {text}\n"
    )


def build_manhwa_intent_prompt(text: str) -> str:
    return (
        "You are a manhwa title parser.\n\n"
        "GOAL:\n"
        "1️⃣ Detect the manhwa title (any language)\n"
        "2️⃣ Convert to official common English title\n"
        "3️⃣ Extract chapter number\n\n"
        "RULES:\n"
        "- If chapter not provided → set chapter = 1\n"
        f"{PromptComponents.never_guess()}\n"
        f"{PromptComponents.json_only()}\n\n"
        "FORMAT:\n"
        "{\n"
        '  "title": "official manhwa title",\n'
        '  "chapter": number,\n'
        '  "notFound": false\n'
        "}\n\n"
        f"User: {text}\n"
    )


def build_match_prompt(query: str, candidates: List[Dict[str, str]], season: Optional[int] = None) -> str:
    searching = f'"{query}"' + (f" season {season}" if season else "")
    return (
        f"User searching: {searching}\n"
        f"{PromptComponents.tie_break_rules()}\n"
        "Return ONLY the id of the best match from this list:\n"
        f"{json.dumps(candidates, ensure_ascii=False)}\n"
    )


def build_casual_prompt(text: str) -> str:
    return (
        "You are a friendly assistant for an anime episode bot.\n\n"
        "If the user is:\n"
        "- greeting\n"
        "- asking how the bot works\n"
        "- chatting outside anime requests\n\n"
        "Reply with ONE short friendly sentence inviting them to try:\n"
        "👉 send an anime name + episode number\n\n"
        "Examples tone:\n"
        '"Hi 👋 Just send an anime title and episode number to start watching 🍿"\n\n'
        f"User message: {text}\n"
    )
