"""
Translate finished stories between the supported languages.
"""

from __future__ import annotations

import logging

from doodletales.ai_generation import GenerativeGateway

from .languages import normalize_language
from .prompting import build_translation_prompt

logger = logging.getLogger(__name__)


class Translator:
    def __init__(self, gateway: GenerativeGateway, *, temperature: float = 0.3) -> None:
        self._gateway = gateway
        self._temperature = temperature

    def translate(
        self,
        text: str,
        target_language: str,
        source_language: str | None = None,
    ) -> str:
        """
        Translate ``text`` into ``target_language``; provider errors propagate.
        """
        if not text or not text.strip():
            raise ValueError("Text to translate must be a non-empty string.")

        target = normalize_language(target_language, default=None)
        source = normalize_language(source_language) if source_language else None
        if source == target:
            return text

        logger.info("Translating %d characters into %s", len(text), target)
        return self._gateway.generate_text(
            build_translation_prompt(text, target, source),
            temperature=self._temperature,
            max_output_tokens=4096,
        )
