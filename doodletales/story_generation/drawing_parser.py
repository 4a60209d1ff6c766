"""
Vision helpers that turn a child's drawing into structured story material.
"""

from __future__ import annotations

import dataclasses
import logging

from doodletales.ai_generation import GenerativeGateway, InlineImage
from doodletales.common import DrawingParseError, ExternalServiceError, Malformed, Parsed, parse_json_response

from .drawing import DrawingDescription
from .prompting import build_drawing_description_prompt, build_drawing_parse_prompt

logger = logging.getLogger(__name__)


class DrawingParser:
    """
    Uses the gateway's multimodal model to read a drawing.
    """

    def __init__(
        self,
        gateway: GenerativeGateway,
        *,
        temperature: float = 0.4,
        max_output_tokens: int = 1024,
    ) -> None:
        self._gateway = gateway
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens

    def parse(self, image: InlineImage, user_hint: str | None = None) -> DrawingDescription:
        """
        Extract characters, setting, and style from the drawing.

        Raises
        ------
        DrawingParseError
            When the provider fails or answers with something that is not the expected JSON.
        """
        prompt = build_drawing_parse_prompt(user_hint)
        try:
            raw_text = self._gateway.generate_text_from_image_and_prompt(
                image,
                prompt,
                temperature=self._temperature,
                max_output_tokens=self._max_output_tokens,
            )
        except ExternalServiceError as exc:
            raise DrawingParseError(f"Drawing analysis failed: {exc}") from exc

        match parse_json_response(raw_text, DrawingDescription.from_mapping):
            case Parsed(value=drawing):
                pass
            case Malformed(raw_text=raw, reason=reason):
                logger.warning("Drawing parse returned malformed JSON (%s): %.200s", reason, raw)
                raise DrawingParseError(f"Drawing analysis returned malformed JSON: {reason}")

        hint = (user_hint or "").strip()
        if hint and not drawing.child_description:
            drawing = dataclasses.replace(drawing, child_description=hint)

        logger.info(
            "Parsed drawing with %d character(s): %s",
            len(drawing.characters),
            ", ".join(character.name for character in drawing.characters),
        )
        return drawing

    def describe(self, image: InlineImage) -> str:
        """
        Return a short, friendly description of the drawing for display to the child.
        """
        return self._gateway.generate_text_from_image_and_prompt(
            image,
            build_drawing_description_prompt(),
            temperature=0.7,
            max_output_tokens=300,
        )
