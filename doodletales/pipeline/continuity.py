"""
Continuity helpers that carry each illustrated scene into the next one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from doodletales.ai_generation import ILLUSTRATION_STYLE, GenerativeGateway, build_illustration_prompt
from doodletales.common import ExternalServiceError
from doodletales.storage import BlobStore, store_or_inline
from doodletales.story_generation import SceneExpander

logger = logging.getLogger(__name__)

DEFAULT_EXCERPT_CHARS = 350


@dataclass(frozen=True)
class SceneProgression:
    """
    Accumulator threaded through the page loop.

    Attributes
    ----------
    previous_scene:
        Bounded excerpt of the scene illustrated on the previous page; empty before page 1.
    max_excerpt_chars:
        Upper bound on the excerpt carried forward.
    """

    previous_scene: str = ""
    max_excerpt_chars: int = DEFAULT_EXCERPT_CHARS

    def advance(self, scene_text: str) -> "SceneProgression":
        excerpt = " ".join(scene_text.split())[: self.max_excerpt_chars].rstrip()
        return SceneProgression(previous_scene=excerpt, max_excerpt_chars=self.max_excerpt_chars)


@dataclass(frozen=True)
class IllustratedScene:
    """Outcome of one expand-and-illustrate step."""

    index: int
    source_text: str
    scene_text: str
    expanded: bool
    image_url: str | None

    def as_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "source_text": self.source_text,
            "scene_text": self.scene_text,
            "expanded": self.expanded,
            "image_url": self.image_url,
        }


class SceneIllustrator:
    """
    Expands one page of text into a scene, renders it, and stores the image.

    The character block and style are fixed for the illustrator's lifetime so
    every page of a run receives exactly the same character description.
    """

    def __init__(
        self,
        gateway: GenerativeGateway,
        blob_store: BlobStore | None,
        *,
        character_dna: str = "",
        style_block: str = ILLUSTRATION_STYLE,
        aspect_ratio: str = "4:3",
        folder: str = "illustrations",
        expander: SceneExpander | None = None,
    ) -> None:
        self._gateway = gateway
        self._blob_store = blob_store
        self._character_dna = character_dna
        self._style_block = style_block
        self._aspect_ratio = aspect_ratio
        self._folder = folder
        self._expander = expander or SceneExpander(gateway)

    @property
    def character_dna(self) -> str:
        return self._character_dna

    def illustrate(
        self,
        progression: SceneProgression,
        text: str,
        *,
        index: int,
        total: int,
    ) -> tuple[IllustratedScene, SceneProgression]:
        """
        Process the page at zero-based ``index`` and return it with the next progression.

        Expansion failures fall back to the raw text and image failures yield
        ``image_url=None``; neither is raised.
        """
        scene_text, expanded = self._expand(progression, text, index=index, total=total)
        image_url = self._render(scene_text, index=index)
        scene = IllustratedScene(
            index=index,
            source_text=text,
            scene_text=scene_text,
            expanded=expanded,
            image_url=image_url,
        )
        return scene, progression.advance(scene_text)

    def _expand(
        self,
        progression: SceneProgression,
        text: str,
        *,
        index: int,
        total: int,
    ) -> tuple[str, bool]:
        try:
            scene_text = self._expander.expand(
                text,
                previous_scene_summary=progression.previous_scene,
                character_dna=self._character_dna,
                page_index=index,
                total_pages=total,
            )
        except ExternalServiceError as exc:
            logger.warning("Scene expansion failed for page %d, using page text: %s", index + 1, exc)
            return text.strip(), False
        return scene_text, True

    def _render(self, scene_text: str, *, index: int) -> str | None:
        prompt = build_illustration_prompt(scene_text, self._character_dna, self._style_block)
        try:
            image = self._gateway.generate_image(prompt, None, aspect_ratio=self._aspect_ratio)
        except ExternalServiceError as exc:
            logger.warning("Illustration failed for page %d: %s", index + 1, exc)
            return None
        return store_or_inline(self._blob_store, image.data, image.mime_type, self._folder)
