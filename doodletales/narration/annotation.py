"""
Expressive stage-direction markers for narration text, and the offset map that undoes them.
"""

from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable

SENTENCE_PATTERN = re.compile(r"[^.!?]*[.!?]+")

JOY_PATTERN = re.compile(
    r"\b(?:hooray|yay|wow|amazing|wonderful|incredible|fantastic)\b", re.IGNORECASE
)
HUSH_PATTERN = re.compile(
    r"\b(?:whisper(?:s|ed|ing)?|quiet(?:ly)?|soft(?:ly)?|hush(?:ed)?|tiptoe[sd]?|tiptoeing|"
    r"sneak(?:s|ed|ing|y)?|snuck)\b",
    re.IGNORECASE,
)
FEAR_PATTERN = re.compile(
    r"\b(?:scared?|scary|dark(?:ness)?|afraid|trembl(?:e|es|ed|ing)|shiver(?:s|ed|ing)?|"
    r"nervous(?:ly)?)\b",
    re.IGNORECASE,
)
SAD_PATTERN = re.compile(
    r"\b(?:sad(?:ly|ness)?|cry|cries|cried|crying|tears?|miss(?:ed|es|ing)?|lonely|alone)\b",
    re.IGNORECASE,
)

LAUGHS_HAPPILY = "[laughs happily]"
EXCITED = "[excited]"
CURIOUSLY = "[curiously]"
SOFTLY = "[softly]"
NERVOUSLY = "[nervously]"
GENTLY = "[gently]"
WARMLY = "[warmly]"


@dataclass(frozen=True)
class AnnotationOffsetMap:
    """
    Sorted ``(clean_position, cumulative_inserted_length)`` pairs.

    A marker inserted before clean position ``p`` shifts every clean index
    ``>= p`` right by the marker length.
    """

    positions: tuple[int, ...] = ()
    offsets: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if len(self.positions) != len(self.offsets):
            raise ValueError("positions and offsets must have the same length.")
        for earlier, later in zip(self.positions, self.positions[1:]):
            if later <= earlier:
                raise ValueError("Offset map positions must be strictly increasing.")
        previous = 0
        for offset in self.offsets:
            if offset < previous:
                raise ValueError("Offset map offsets must be non-decreasing.")
            previous = offset

    @classmethod
    def from_entries(cls, entries: Iterable[tuple[int, int]]) -> "AnnotationOffsetMap":
        pairs = list(entries)
        return cls(
            positions=tuple(position for position, _ in pairs),
            offsets=tuple(offset for _, offset in pairs),
        )

    @property
    def entries(self) -> list[tuple[int, int]]:
        return list(zip(self.positions, self.offsets))

    def offset_at(self, clean_index: int) -> int:
        slot = bisect_right(self.positions, clean_index) - 1
        return self.offsets[slot] if slot >= 0 else 0

    def to_annotated(self, clean_index: int) -> int:
        return clean_index + self.offset_at(clean_index)

    def __len__(self) -> int:
        return len(self.positions)


@dataclass(frozen=True)
class AnnotatedText:
    text: str
    offset_map: AnnotationOffsetMap


def choose_marker(sentence: str, *, is_first: bool) -> str | None:
    """
    Pick at most one stage direction for ``sentence``; earlier rules win.
    """
    if "!" in sentence:
        return LAUGHS_HAPPILY if JOY_PATTERN.search(sentence) else EXCITED
    if "?" in sentence:
        return CURIOUSLY
    if HUSH_PATTERN.search(sentence):
        return SOFTLY
    if FEAR_PATTERN.search(sentence):
        return NERVOUSLY
    if SAD_PATTERN.search(sentence):
        return GENTLY
    if is_first:
        return WARMLY
    return None


def annotate_expressive_text(clean_text: str) -> AnnotatedText:
    """
    Prefix sentences with stage-direction markers for an expressive TTS voice.

    Each marker is followed by one space and inserted at the sentence's first
    non-whitespace character.
    """
    pieces: list[str] = []
    entries: list[tuple[int, int]] = []
    cursor = 0
    inserted = 0
    seen_sentence = False

    for match in SENTENCE_PATTERN.finditer(clean_text):
        sentence = match.group()
        stripped = sentence.lstrip()
        if not stripped:
            continue

        marker = choose_marker(sentence, is_first=not seen_sentence)
        seen_sentence = True
        if marker is None:
            continue

        position = match.start() + (len(sentence) - len(stripped))
        pieces.append(clean_text[cursor:position])
        pieces.append(f"{marker} ")
        inserted += len(marker) + 1
        entries.append((position, inserted))
        cursor = position

    pieces.append(clean_text[cursor:])
    return AnnotatedText(text="".join(pieces), offset_map=AnnotationOffsetMap.from_entries(entries))
