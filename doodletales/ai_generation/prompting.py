"""
Prompt construction utilities for DoodleTales illustration generation.
"""

from __future__ import annotations

ILLUSTRATION_STYLE = (
    "Style: vibrant flat 2D children's picture book illustration, bright saturated colors, "
    "clean bold outlines, cute expressive characters with large friendly eyes, "
    "detailed storybook background, consistent character appearance across every page, "
    "no text, letters, or watermarks."
)

BOOK_ILLUSTRATION_STYLE = " ".join(
    [
        "Style: 2D flat digital illustration, vibrant children's picture book style.",
        "Bright saturated colors, bold primaries and warm pastels.",
        "Clean outlines, flat color fills, soft rounded shapes.",
        "Characters have large friendly eyes and expressive faces and look the same in every scene.",
        "Rich storybook backgrounds with a clear foreground, midground, and background.",
        "Magical warm atmosphere, crisp and clean, appropriate for ages 4-8.",
    ]
)


def build_illustration_prompt(
    expanded_scene: str,
    character_dna: str = "",
    style_block: str = ILLUSTRATION_STYLE,
) -> str:
    """
    Assemble the image prompt: scene first, then the character block, then the style.

    Image models weight early tokens as the subject, so the order is fixed.
    """
    if not expanded_scene or not expanded_scene.strip():
        raise ValueError("expanded_scene must be a non-empty string.")

    sections = [expanded_scene.strip()]

    dna = (character_dna or "").strip()
    if dna:
        sections.append(f"Characters in this scene: {dna}")

    style = (style_block or "").strip()
    if style:
        sections.append(style)

    return "\n\n".join(sections)
