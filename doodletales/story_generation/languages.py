"""
Supported story languages and the small amount of localized copy the pipeline needs.
"""

from __future__ import annotations

from typing import Any

SUPPORTED_LANGUAGES: tuple[str, ...] = ("english", "spanish", "french", "chinese")
DEFAULT_LANGUAGE = "english"

_ALIASES = {
    "en": "english",
    "eng": "english",
    "es": "spanish",
    "español": "spanish",
    "espanol": "spanish",
    "fr": "french",
    "français": "french",
    "francais": "french",
    "zh": "chinese",
    "zh-cn": "chinese",
    "mandarin": "chinese",
    "中文": "chinese",
}

LANGUAGE_DISPLAY_NAMES = {
    "english": "English",
    "spanish": "Spanish",
    "french": "French",
    "chinese": "Chinese (Simplified)",
}

GENERIC_TITLES = {
    "english": "My Magical Story",
    "spanish": "Mi historia mágica",
    "french": "Mon histoire magique",
    "chinese": "我的神奇故事",
}


def normalize_language(value: Any, *, default: str | None = DEFAULT_LANGUAGE) -> str:
    """
    Return the canonical lowercase language key, raising ``ValueError`` when unsupported.
    """
    if value is None or not str(value).strip():
        if default is None:
            raise ValueError("A language must be provided.")
        return default

    key = str(value).strip().lower()
    key = _ALIASES.get(key, key)
    if key not in SUPPORTED_LANGUAGES:
        supported = ", ".join(SUPPORTED_LANGUAGES)
        raise ValueError(f"Unsupported language '{value}'. Supported languages: {supported}.")
    return key


def display_name(language: str) -> str:
    return LANGUAGE_DISPLAY_NAMES[normalize_language(language)]


def generic_title(language: str) -> str:
    return GENERIC_TITLES.get(language, GENERIC_TITLES[DEFAULT_LANGUAGE])
