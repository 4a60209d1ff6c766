"""
Expand short story pages into vivid, image-ready scene briefs.
"""

from __future__ import annotations

import logging

from doodletales.ai_generation import GenerativeGateway

from .prompting import build_scene_expansion_prompt

logger = logging.getLogger(__name__)


class SceneExpander:
    """
    Turns one page of story text into a two-sentence visual brief.
    """

    def __init__(
        self,
        gateway: GenerativeGateway,
        *,
        temperature: float = 0.7,
        max_output_tokens: int = 400,
    ) -> None:
        self._gateway = gateway
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens

    def expand(
        self,
        page_text: str,
        *,
        previous_scene_summary: str = "",
        character_dna: str = "",
        page_index: int = 0,
        total_pages: int = 1,
    ) -> str:
        """
        Return the expanded scene. Provider errors propagate to the caller.
        """
        if not page_text or not page_text.strip():
            raise ValueError("page_text must be a non-empty string.")

        prompt = build_scene_expansion_prompt(
            page_text,
            previous_scene_summary,
            character_dna,
            page_index,
            total_pages,
        )
        scene = self._gateway.generate_text(
            prompt,
            temperature=self._temperature,
            max_output_tokens=self._max_output_tokens,
        )
        logger.debug("Expanded scene %d/%d: %.120s", page_index + 1, total_pages, scene)
        return " ".join(scene.split())
