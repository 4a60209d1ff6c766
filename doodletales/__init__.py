"""
DoodleTales package: turn a child's drawing into an illustrated, narrated storybook.
"""

from .ai_generation import GenerativeGateway, InlineImage
from .narration import ElevenLabsSpeechProvider, NarrationEngine, NarrationResult, VoiceSettings
from .pdf_generation import StorybookPDFBuilder, extract_pdf_text
from .pipeline import (
    BookConversionOrchestrator,
    BookConversionResult,
    StoryGenerationConfig,
    StoryGenerationOrchestrator,
    StoryResult,
)
from .storage import LocalBlobStore

__all__ = [
    "BookConversionOrchestrator",
    "BookConversionResult",
    "ElevenLabsSpeechProvider",
    "GenerativeGateway",
    "InlineImage",
    "LocalBlobStore",
    "NarrationEngine",
    "NarrationResult",
    "StoryGenerationConfig",
    "StoryGenerationOrchestrator",
    "StoryResult",
    "StorybookPDFBuilder",
    "VoiceSettings",
    "extract_pdf_text",
]
