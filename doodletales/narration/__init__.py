"""
Narration with word-level timings for read-along highlighting.
"""

from .alignment import CharacterAlignment, WordTiming, build_word_timings
from .annotation import AnnotatedText, AnnotationOffsetMap, annotate_expressive_text
from .elevenlabs_service import (
    ElevenLabsSpeechProvider,
    SpeechSynthesis,
    Voice,
    VoiceCatalog,
    VoiceSettings,
)
from .engine import NarrationEngine, NarrationResult

__all__ = [
    "AnnotatedText",
    "AnnotationOffsetMap",
    "CharacterAlignment",
    "ElevenLabsSpeechProvider",
    "NarrationEngine",
    "NarrationResult",
    "SpeechSynthesis",
    "Voice",
    "VoiceCatalog",
    "VoiceSettings",
    "WordTiming",
    "annotate_expressive_text",
    "build_word_timings",
]
