"""
Timed narration: expressive synthesis plus word-level highlighting data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import yaml

from doodletales.common import ExternalServiceError, NarrationError

from .alignment import WordTiming, build_word_timings
from .annotation import annotate_expressive_text
from .elevenlabs_service import ElevenLabsSpeechProvider, VoiceSettings

logger = logging.getLogger(__name__)


@dataclass
class NarrationResult:
    audio: bytes
    mime_type: str
    word_timings: list[WordTiming]
    annotated_text: str

    def to_dict(self) -> dict[str, Any]:
        """Everything except the audio bytes."""
        return {
            "mime_type": self.mime_type,
            "annotated_text": self.annotated_text,
            "word_timings": [timing.as_dict() for timing in self.word_timings],
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)


class NarrationEngine:
    """
    Annotates narration text, synthesizes it, and maps the timings back to the clean text.
    """

    def __init__(self, speech_provider: ElevenLabsSpeechProvider) -> None:
        self._speech_provider = speech_provider

    def synthesize_with_word_timings(
        self,
        clean_text: str,
        voice: VoiceSettings | None = None,
    ) -> NarrationResult:
        """
        Raises
        ------
        ValueError
            If ``clean_text`` is empty.
        NarrationError
            If the speech provider fails or returns unusable timings.
        """
        if not clean_text or not clean_text.strip():
            raise ValueError("Narration text must be a non-empty string.")

        annotated = annotate_expressive_text(clean_text)
        logger.debug("Annotated narration with %d marker(s)", len(annotated.offset_map))

        try:
            synthesis = self._speech_provider.synthesize_with_timestamps(annotated.text, voice)
        except ExternalServiceError as exc:
            raise NarrationError(f"Speech synthesis failed: {exc}") from exc

        try:
            timings = build_word_timings(clean_text, synthesis.alignment, annotated.offset_map)
        except ValueError as exc:
            raise NarrationError(f"Speech timings could not be aligned: {exc}") from exc

        return NarrationResult(
            audio=synthesis.audio,
            mime_type=synthesis.mime_type,
            word_timings=timings,
            annotated_text=annotated.text,
        )
