"""
Generates the short, illustratable page texts of a story.
"""

from __future__ import annotations

import logging

from doodletales.ai_generation import GenerativeGateway
from doodletales.common import (
    ExternalServiceError,
    Malformed,
    Parsed,
    StoryGenerationError,
    parse_json_response,
)
from doodletales.common.parsing import string_list

from .drawing import DrawingDescription
from .prompting import MAX_PAGES, build_description_page_text_prompt, build_page_text_prompt

logger = logging.getLogger(__name__)


class PageTextWriter:
    """
    Asks the text model for a JSON array of page strings and validates it.
    """

    def __init__(
        self,
        gateway: GenerativeGateway,
        *,
        max_pages: int = MAX_PAGES,
        temperature: float = 0.8,
        max_output_tokens: int = 4096,
    ) -> None:
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1.")
        self._gateway = gateway
        self._max_pages = max_pages
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens

    @property
    def max_pages(self) -> int:
        return self._max_pages

    def write_pages(
        self,
        description: str,
        language: str,
        *,
        drawing: DrawingDescription | None = None,
    ) -> list[str]:
        """
        Return between 1 and ``max_pages`` page texts in reading order.

        Raises
        ------
        StoryGenerationError
            When the provider fails after retries or the answer is not a non-empty
            JSON array of strings.
        """
        if drawing is not None:
            prompt = build_page_text_prompt(drawing, language)
        else:
            prompt = build_description_page_text_prompt(description, language)

        try:
            raw_text = self._gateway.generate_text(
                prompt,
                temperature=self._temperature,
                max_output_tokens=self._max_output_tokens,
            )
        except ExternalServiceError as exc:
            raise StoryGenerationError(f"Page text generation failed: {exc}") from exc

        match parse_json_response(raw_text, string_list):
            case Parsed(value=pages):
                pass
            case Malformed(raw_text=raw, reason=reason):
                logger.warning("Page text response was malformed (%s): %.200s", reason, raw)
                raise StoryGenerationError(f"Page text response was malformed: {reason}")

        if len(pages) > self._max_pages:
            logger.info("Truncating %d generated pages to %d.", len(pages), self._max_pages)
            pages = pages[: self._max_pages]
        return pages
