"""
Map per-character speech timings back onto the words of the original narration text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from .annotation import AnnotationOffsetMap

_WORD_PATTERN = re.compile(r"\S+")


@dataclass(frozen=True)
class CharacterAlignment:
    """Per-character start/end times, indexed over the text the provider actually spoke."""

    characters: tuple[str, ...]
    start_times: tuple[float, ...]
    end_times: tuple[float, ...]

    def __post_init__(self) -> None:
        if not (len(self.characters) == len(self.start_times) == len(self.end_times)):
            raise ValueError("Alignment arrays must all have the same length.")

    def __len__(self) -> int:
        return len(self.characters)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CharacterAlignment":
        try:
            characters = tuple(str(item) for item in data["characters"])
            starts = tuple(float(item) for item in data["character_start_times_seconds"])
            ends = tuple(float(item) for item in data["character_end_times_seconds"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid character alignment payload: {exc}") from exc
        return cls(characters=characters, start_times=starts, end_times=ends)


@dataclass(frozen=True)
class WordTiming:
    word: str
    char_start: int
    char_end: int
    start_time: float
    end_time: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "word": self.word,
            "char_start": self.char_start,
            "char_end": self.char_end,
            "start_time": round(self.start_time, 3),
            "end_time": round(self.end_time, 3),
        }


def build_word_timings(
    clean_text: str,
    alignment: CharacterAlignment,
    offsets: AnnotationOffsetMap,
) -> list[WordTiming]:
    """
    Produce one :class:`WordTiming` per whitespace-delimited word of ``clean_text``.

    Word boundaries are translated into annotated-text indices through ``offsets``
    and clamped to the alignment. Times never decrease from word to word.
    """
    if len(alignment) == 0:
        raise ValueError("Cannot build word timings from an empty alignment.")

    last_index = len(alignment) - 1
    timings: list[WordTiming] = []
    previous_start = 0.0

    for match in _WORD_PATTERN.finditer(clean_text):
        first = min(max(offsets.to_annotated(match.start()), 0), last_index)
        last = min(max(offsets.to_annotated(match.end() - 1), 0), last_index)

        start_time = max(alignment.start_times[first], previous_start)
        end_time = max(alignment.end_times[last], start_time)
        previous_start = start_time

        timings.append(
            WordTiming(
                word=match.group(),
                char_start=match.start(),
                char_end=match.end(),
                start_time=start_time,
                end_time=end_time,
            )
        )
    return timings
