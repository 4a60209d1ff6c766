"""
Converts long-form text into a simplified, illustrated children's book.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from doodletales.ai_generation import BOOK_ILLUSTRATION_STYLE, GenerativeGateway
from doodletales.common import (
    BookConversionError,
    ExternalServiceError,
    Malformed,
    Parsed,
    parse_json_response,
)
from doodletales.common.parsing import string_list
from doodletales.storage import BlobStore
from doodletales.story_generation import (
    Character,
    SceneExpander,
    format_character_summary,
)
from doodletales.story_generation.prompting import (
    build_character_extraction_prompt,
    build_scene_identification_prompt,
    build_simplify_prompt,
)

from .continuity import SceneIllustrator, SceneProgression
from .pipeline import ProgressCallback, StoryGenerationConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookScene:
    index: int
    description: str
    image_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "description": self.description, "image_url": self.image_url}


@dataclass
class BookConversionResult:
    """Simplified text plus the illustrated key scenes, in reading order."""

    simplified_text: str
    scenes: list[BookScene]
    character_summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "simplified_text": self.simplified_text,
            "character_summary": self.character_summary,
            "scenes": [scene.to_dict() for scene in self.scenes],
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)

    def write_yaml(self, path: str | Path) -> Path:
        target = Path(path)
        target.write_text(self.to_yaml(), encoding="utf-8")
        return target


def chunk_text(text: str, size: int) -> list[str]:
    """Fixed-size slices; no attempt is made to respect sentence boundaries."""
    if size < 1:
        raise ValueError("Chunk size must be positive.")
    return [text[start : start + size] for start in range(0, len(text), size)]


def _character_list(value: Any) -> list[Character]:
    if not isinstance(value, list):
        raise ValueError("expected a JSON array of characters")
    characters = [Character.from_value(item) for item in value]
    return [character for character in characters if character is not None]


class BookConversionOrchestrator:
    """
    Simplifies a book in chunks, extracts its characters, and illustrates its key scenes.
    """

    def __init__(
        self,
        gateway: GenerativeGateway,
        blob_store: BlobStore | None = None,
        config: StoryGenerationConfig | None = None,
        *,
        scene_expander: SceneExpander | None = None,
        image_folder: str = "book-illustrations",
    ) -> None:
        self._gateway = gateway
        self._blob_store = blob_store
        self._config = config or StoryGenerationConfig()
        self._scene_expander = scene_expander or SceneExpander(gateway)
        self._image_folder = image_folder

    def convert_book(
        self,
        raw_text: str,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> BookConversionResult:
        """
        Raises
        ------
        ValueError
            If ``raw_text`` is empty.
        BookConversionError
            If simplification fails or no scenes can be identified.
        """
        if not raw_text or not raw_text.strip():
            raise ValueError("Book text must be a non-empty string.")

        simplified_text = self._simplify(raw_text, progress_callback)

        self._notify(progress_callback, "book:characters")
        character_summary = self._extract_character_summary(simplified_text)

        self._notify(progress_callback, "book:scenes")
        scene_descriptions = self._identify_scenes(simplified_text)
        total_scenes = len(scene_descriptions)
        self._notify(progress_callback, "book:scenes_ready", total_scenes=total_scenes)

        illustrator = SceneIllustrator(
            self._gateway,
            self._blob_store,
            character_dna=character_summary,
            style_block=BOOK_ILLUSTRATION_STYLE,
            aspect_ratio=self._config.aspect_ratio,
            folder=self._image_folder,
            expander=self._scene_expander,
        )
        progression = SceneProgression(max_excerpt_chars=self._config.excerpt_chars)
        scenes: list[BookScene] = []
        for index, description in enumerate(scene_descriptions):
            self._notify(
                progress_callback,
                "scene:processing",
                scene_number=index + 1,
                total_scenes=total_scenes,
            )
            illustrated, progression = illustrator.illustrate(
                progression,
                description,
                index=index,
                total=total_scenes,
            )
            scenes.append(
                BookScene(index=index + 1, description=description, image_url=illustrated.image_url)
            )
            self._notify(
                progress_callback,
                "scene:done",
                scene_number=index + 1,
                total_scenes=total_scenes,
                has_image=illustrated.image_url is not None,
            )

        self._notify(progress_callback, "pipeline:complete", total_scenes=total_scenes)
        return BookConversionResult(
            simplified_text=simplified_text,
            scenes=scenes,
            character_summary=character_summary,
        )

    def _simplify(self, raw_text: str, progress_callback: ProgressCallback | None) -> str:
        chunks = chunk_text(raw_text, self._config.book_chunk_chars)
        simplified: list[str] = []
        for number, chunk in enumerate(chunks, start=1):
            self._notify(
                progress_callback,
                "book:simplifying",
                chunk_number=number,
                total_chunks=len(chunks),
            )
            try:
                simplified.append(
                    self._gateway.generate_text(build_simplify_prompt(chunk), temperature=0.5)
                )
            except ExternalServiceError as exc:
                raise BookConversionError(
                    f"Simplifying chunk {number}/{len(chunks)} failed: {exc}"
                ) from exc
        return "\n\n".join(simplified)

    def _extract_character_summary(self, simplified_text: str) -> str:
        try:
            raw_text = self._gateway.generate_text(
                build_character_extraction_prompt(simplified_text),
                temperature=0.3,
            )
        except ExternalServiceError as exc:
            logger.warning("Character extraction failed, continuing without it: %s", exc)
            return ""

        match parse_json_response(raw_text, _character_list):
            case Parsed(value=characters):
                return format_character_summary(characters)
            case Malformed(reason=reason):
                logger.warning("Character extraction returned malformed JSON: %s", reason)
                return ""

    def _identify_scenes(self, simplified_text: str) -> list[str]:
        try:
            raw_text = self._gateway.generate_text(
                build_scene_identification_prompt(simplified_text),
                temperature=0.5,
            )
        except ExternalServiceError as exc:
            raise BookConversionError(f"Scene identification failed: {exc}") from exc

        match parse_json_response(raw_text, string_list):
            case Parsed(value=scenes):
                return scenes[: self._config.max_pages]
            case Malformed(raw_text=raw, reason=reason):
                logger.warning("Scene identification was malformed (%s): %.200s", reason, raw)
                raise BookConversionError(f"No scenes could be identified: {reason}")

    @staticmethod
    def _notify(
        callback: ProgressCallback | None,
        stage: str,
        **payload: Any,
    ) -> None:
        if callback is not None:
            callback(stage, payload)
