"""
Title and summary generation with heuristics that reject sentence-like titles.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from doodletales.ai_generation import GenerativeGateway
from doodletales.common import ExternalServiceError, Malformed, Parsed, parse_json_response
from doodletales.common.parsing import json_object

from .languages import generic_title
from .prompting import build_title_summary_prompt

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[\W_]+", re.UNICODE)


@dataclass(frozen=True)
class TitleHeuristics:
    """
    Tuning constants for accepting a model-generated title.

    Attributes
    ----------
    max_title_chars:
        Titles longer than this are treated as sentences and rejected.
    max_title_words:
        Titles with more whitespace-separated words than this are rejected.
    opening_prefix_chars:
        How much of the first page is compared against the title to catch
        a restated opening line.
    min_prefix_match_chars:
        A title that is a prefix of the opening is only rejected when it is at
        least this long, so short titles like "The Dragon" survive.
    summary_chars:
        Maximum summary length; longer summaries are cut at a word boundary.
    """

    max_title_chars: int = 60
    max_title_words: int = 8
    opening_prefix_chars: int = 40
    min_prefix_match_chars: int = 20
    summary_chars: int = 120


DEFAULT_TITLE_HEURISTICS = TitleHeuristics()


@dataclass(frozen=True)
class TitleSummary:
    title: str
    summary: str
    generated_title: bool = True
    generated_summary: bool = True


def _normalize_for_comparison(text: str) -> str:
    return " ".join(_NON_WORD.sub(" ", text.lower()).split())


def truncate_at_word_boundary(text: str, limit: int) -> str:
    """
    Collapse whitespace and cut ``text`` to at most ``limit`` characters, ending on a whole word.
    """
    collapsed = " ".join(text.split())
    if len(collapsed) <= limit:
        return collapsed

    cut = collapsed[: max(limit - 1, 1)]
    boundary = cut.rfind(" ")
    if boundary > 0:
        cut = cut[:boundary]
    return cut.rstrip(" ,;:-") + "…"


def is_acceptable_title(
    title: str,
    first_page: str,
    heuristics: TitleHeuristics = DEFAULT_TITLE_HEURISTICS,
) -> bool:
    candidate = title.strip()
    if not candidate:
        return False
    if len(candidate) > heuristics.max_title_chars:
        return False
    if len(candidate.split()) > heuristics.max_title_words:
        return False

    normalized_title = _normalize_for_comparison(candidate)
    opening = _normalize_for_comparison(first_page[: heuristics.opening_prefix_chars])
    if not normalized_title or not opening:
        return True

    if normalized_title.startswith(opening):
        return False
    if (
        opening.startswith(normalized_title)
        and len(normalized_title) >= heuristics.min_prefix_match_chars
    ):
        return False
    return True


def _title_summary_payload(value: Any) -> dict[str, str]:
    payload = json_object(value)
    return {
        "title": str(payload.get("title") or "").strip(),
        "summary": str(payload.get("summary") or "").strip(),
    }


class TitleSummaryGenerator:
    """
    Generates a story title and summary, falling back to safe defaults.
    """

    def __init__(
        self,
        gateway: GenerativeGateway,
        *,
        heuristics: TitleHeuristics = DEFAULT_TITLE_HEURISTICS,
        temperature: float = 0.7,
    ) -> None:
        self._gateway = gateway
        self._heuristics = heuristics
        self._temperature = temperature

    @property
    def heuristics(self) -> TitleHeuristics:
        return self._heuristics

    def generate(self, full_text: str, *, first_page: str, language: str) -> TitleSummary:
        """
        Never raises for provider problems; failures degrade to a generic title and
        a truncated summary.
        """
        payload: dict[str, str] = {"title": "", "summary": ""}
        try:
            raw_text = self._gateway.generate_text(
                build_title_summary_prompt(full_text),
                temperature=self._temperature,
                max_output_tokens=256,
            )
        except ExternalServiceError as exc:
            logger.warning("Title/summary generation failed, using fallbacks: %s", exc)
        else:
            match parse_json_response(raw_text, _title_summary_payload):
                case Parsed(value=parsed):
                    payload = parsed
                case Malformed(reason=reason):
                    logger.warning("Title/summary response was malformed: %s", reason)

        title = payload["title"]
        generated_title = is_acceptable_title(title, first_page, self._heuristics)
        if not generated_title:
            if title:
                logger.info("Rejected generated title %r", title)
            title = generic_title(language)

        summary = payload["summary"]
        generated_summary = bool(summary)
        if not summary:
            summary = full_text
        summary = truncate_at_word_boundary(summary, self._heuristics.summary_chars)

        return TitleSummary(
            title=title,
            summary=summary,
            generated_title=generated_title,
            generated_summary=generated_summary,
        )
