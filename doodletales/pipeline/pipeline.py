"""
Orchestrates the full DoodleTales pipeline from a drawing to an illustrated story.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from doodletales.ai_generation import GenerativeGateway, InlineImage
from doodletales.common import DrawingParseError, StoryGenerationError
from doodletales.storage import BlobStore
from doodletales.story_generation import (
    MAX_PAGES,
    DrawingDescription,
    DrawingParser,
    PageTextWriter,
    SceneExpander,
    TitleHeuristics,
    TitleSummaryGenerator,
    build_character_dna,
    generic_title,
    normalize_language,
    truncate_at_word_boundary,
)

from .continuity import DEFAULT_EXCERPT_CHARS, SceneIllustrator, SceneProgression
from .fallback import fallback_story_text

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, dict[str, Any]], None]


@dataclass(frozen=True)
class StoryGenerationConfig:
    """
    Tunables shared by the story and book pipelines.

    Attributes
    ----------
    max_pages:
        Hard cap on pages (or book scenes) that are illustrated.
    aspect_ratio:
        Aspect ratio requested from the image model.
    image_folder:
        Storage folder for generated illustrations.
    excerpt_chars:
        Length of the previous-scene excerpt carried to the next page.
    title_heuristics:
        Thresholds used to reject sentence-like titles.
    book_chunk_chars:
        Size of the fixed slices sent for simplification during book conversion.
    """

    max_pages: int = MAX_PAGES
    aspect_ratio: str = "4:3"
    image_folder: str = "illustrations"
    excerpt_chars: int = DEFAULT_EXCERPT_CHARS
    title_heuristics: TitleHeuristics = field(default_factory=TitleHeuristics)
    book_chunk_chars: int = 5000


@dataclass
class Page:
    """A single page of the finished story."""

    text: str
    image_url: str | None = None
    scene_description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "image_url": self.image_url,
            "scene_description": self.scene_description,
        }


@dataclass
class StoryResult:
    """Aggregated output of the story pipeline."""

    pages: list[Page]
    full_text: str
    title: str
    summary: str
    fallback: bool = False
    language: str = "english"

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "summary": self.summary,
            "language": self.language,
            "fallback": self.fallback,
            "full_text": self.full_text,
            "pages": [page.to_dict() for page in self.pages],
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "StoryResult":
        if "pages" not in payload:
            raise ValueError("Story payload must include 'pages'.")

        pages: list[Page] = []
        for entry in payload.get("pages") or []:
            try:
                text = str(entry["text"]).strip()
            except (KeyError, TypeError) as exc:
                raise ValueError(f"Invalid page entry: {entry}") from exc
            image_url = entry.get("image_url")
            pages.append(
                Page(
                    text=text,
                    image_url=str(image_url) if image_url else None,
                    scene_description=str(entry.get("scene_description") or "").strip(),
                )
            )

        full_text = str(payload.get("full_text") or "").strip() or "\n\n".join(
            page.text for page in pages
        )
        return cls(
            pages=pages,
            full_text=full_text,
            title=str(payload.get("title") or "").strip(),
            summary=str(payload.get("summary") or "").strip(),
            fallback=bool(payload.get("fallback", False)),
            language=str(payload.get("language") or "english"),
        )

    @classmethod
    def from_yaml(cls, source: str | Path) -> "StoryResult":
        path = Path(source)
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(data, Mapping):
            raise ValueError("Story YAML must deserialize to a mapping.")
        return cls.from_dict(data)


class StoryGenerationOrchestrator:
    """
    High-level coordinator that turns a description (and optional drawing) into a story.
    """

    def __init__(
        self,
        gateway: GenerativeGateway,
        blob_store: BlobStore | None = None,
        config: StoryGenerationConfig | None = None,
        *,
        drawing_parser: DrawingParser | None = None,
        page_writer: PageTextWriter | None = None,
        scene_expander: SceneExpander | None = None,
        title_generator: TitleSummaryGenerator | None = None,
    ) -> None:
        self._gateway = gateway
        self._blob_store = blob_store
        self._config = config or StoryGenerationConfig()
        self._drawing_parser = drawing_parser or DrawingParser(gateway)
        self._page_writer = page_writer or PageTextWriter(gateway, max_pages=self._config.max_pages)
        self._scene_expander = scene_expander or SceneExpander(gateway)
        self._title_generator = title_generator or TitleSummaryGenerator(
            gateway,
            heuristics=self._config.title_heuristics,
        )

    def generate_story(
        self,
        description: str,
        language: str = "english",
        image: InlineImage | None = None,
        *,
        progress_callback: ProgressCallback | None = None,
        allow_fallback: bool = True,
    ) -> StoryResult:
        """
        Run the complete pipeline: drawing, pages, per-page scenes and images, title.

        Only a failure to produce any page text is fatal. With ``allow_fallback`` a
        canned story flagged ``fallback=True`` is returned instead of raising
        :class:`StoryGenerationError`.
        """
        language = normalize_language(language)
        description = (description or "").strip()
        if not description and image is None:
            raise ValueError("A description or a drawing is required.")

        drawing = self._parse_drawing(description, image, progress_callback)

        self._notify(progress_callback, "pages:generating", language=language)
        try:
            page_texts = self._page_writer.write_pages(description, language, drawing=drawing)
        except StoryGenerationError as exc:
            if not allow_fallback:
                raise
            logger.warning("Story generation failed, returning canned story: %s", exc)
            return self._fallback_result(description, language, progress_callback)
        total_pages = len(page_texts)
        self._notify(progress_callback, "pages:ready", total_pages=total_pages)

        illustrator = SceneIllustrator(
            self._gateway,
            self._blob_store,
            character_dna=build_character_dna(drawing),
            aspect_ratio=self._config.aspect_ratio,
            folder=self._config.image_folder,
            expander=self._scene_expander,
        )
        pages = self._illustrate_pages(illustrator, page_texts, progress_callback)

        full_text = "\n\n".join(page.text for page in pages)
        self._notify(progress_callback, "title:generating")
        title_summary = self._title_generator.generate(
            full_text,
            first_page=page_texts[0],
            language=language,
        )

        result = StoryResult(
            pages=pages,
            full_text=full_text,
            title=title_summary.title,
            summary=title_summary.summary,
            fallback=False,
            language=language,
        )
        self._notify(
            progress_callback,
            "pipeline:complete",
            total_pages=total_pages,
            illustrated_pages=sum(1 for page in pages if page.image_url),
            title=result.title,
        )
        return result

    def _parse_drawing(
        self,
        description: str,
        image: InlineImage | None,
        progress_callback: ProgressCallback | None,
    ) -> DrawingDescription | None:
        if image is None:
            self._notify(progress_callback, "drawing:skipped", reason="no drawing provided")
            return None

        self._notify(progress_callback, "drawing:parsing")
        try:
            drawing = self._drawing_parser.parse(image, description or None)
        except DrawingParseError as exc:
            logger.warning("Continuing without drawing analysis: %s", exc)
            self._notify(progress_callback, "drawing:skipped", reason=str(exc))
            return None

        self._notify(
            progress_callback,
            "drawing:ready",
            characters=[character.name for character in drawing.characters],
            setting=drawing.setting,
        )
        return drawing

    def _illustrate_pages(
        self,
        illustrator: SceneIllustrator,
        page_texts: list[str],
        progress_callback: ProgressCallback | None,
    ) -> list[Page]:
        pages: list[Page] = []
        total_pages = len(page_texts)
        progression = SceneProgression(max_excerpt_chars=self._config.excerpt_chars)
        for index, text in enumerate(page_texts):
            self._notify(
                progress_callback,
                "page:processing",
                page_number=index + 1,
                total_pages=total_pages,
                text=text,
            )
            scene, progression = illustrator.illustrate(
                progression,
                text,
                index=index,
                total=total_pages,
            )
            pages.append(
                Page(text=text, image_url=scene.image_url, scene_description=scene.scene_text)
            )
            self._notify(
                progress_callback,
                "page:done",
                page_number=index + 1,
                total_pages=total_pages,
                has_image=scene.image_url is not None,
            )
        return pages

    def _fallback_result(
        self,
        description: str,
        language: str,
        progress_callback: ProgressCallback | None,
    ) -> StoryResult:
        text = fallback_story_text(description, language)
        result = StoryResult(
            pages=[Page(text=text, image_url=None)],
            full_text=text,
            title=generic_title(language),
            summary=truncate_at_word_boundary(text, self._config.title_heuristics.summary_chars),
            fallback=True,
            language=language,
        )
        self._notify(progress_callback, "pipeline:fallback", language=language)
        return result

    @staticmethod
    def _notify(
        callback: ProgressCallback | None,
        stage: str,
        **payload: Any,
    ) -> None:
        if callback is not None:
            callback(stage, payload)
