"""
Story generation utilities: drawing analysis, page writing, scenes, titles, and translation.
"""

from .drawing import DEFAULT_CHARACTER, Character, DrawingDescription
from .drawing_parser import DrawingParser
from .languages import SUPPORTED_LANGUAGES, generic_title, normalize_language
from .page_writer import PageTextWriter
from .prompting import (
    MAX_PAGES,
    build_character_dna,
    build_description_page_text_prompt,
    build_drawing_parse_prompt,
    build_page_text_prompt,
    build_scene_expansion_prompt,
    build_title_summary_prompt,
    format_character_summary,
)
from .scene_builder import SceneExpander
from .title import TitleHeuristics, TitleSummary, TitleSummaryGenerator, truncate_at_word_boundary
from .translation import Translator

__all__ = [
    "Character",
    "DEFAULT_CHARACTER",
    "DrawingDescription",
    "DrawingParser",
    "MAX_PAGES",
    "PageTextWriter",
    "SUPPORTED_LANGUAGES",
    "SceneExpander",
    "TitleHeuristics",
    "TitleSummary",
    "TitleSummaryGenerator",
    "Translator",
    "build_character_dna",
    "build_description_page_text_prompt",
    "build_drawing_parse_prompt",
    "build_page_text_prompt",
    "build_scene_expansion_prompt",
    "build_title_summary_prompt",
    "format_character_summary",
    "generic_title",
    "normalize_language",
    "truncate_at_word_boundary",
]
