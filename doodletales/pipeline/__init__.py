"""
End-to-end orchestration for DoodleTales stories and book conversion.
"""

from .book_conversion import BookConversionOrchestrator, BookConversionResult, BookScene, chunk_text
from .continuity import IllustratedScene, SceneIllustrator, SceneProgression
from .fallback import fallback_story_text
from .pipeline import (
    Page,
    ProgressCallback,
    StoryGenerationConfig,
    StoryGenerationOrchestrator,
    StoryResult,
)

__all__ = [
    "BookConversionOrchestrator",
    "BookConversionResult",
    "BookScene",
    "IllustratedScene",
    "Page",
    "ProgressCallback",
    "SceneIllustrator",
    "SceneProgression",
    "StoryGenerationConfig",
    "StoryGenerationOrchestrator",
    "StoryResult",
    "chunk_text",
    "fallback_story_text",
]
