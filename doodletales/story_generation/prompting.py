"""
Prompt construction utilities for the DoodleTales story workflows.

Every builder here is a pure function of its arguments.
"""

from __future__ import annotations

import json
from typing import Sequence

from .drawing import Character, DrawingDescription
from .languages import display_name

MIN_PAGES = 5
MAX_PAGES = 10

SAFETY_GUIDANCE = "Fun, whimsical tone. No dark, scary, or violent content."

DRAWING_PARSE_INSTRUCTIONS = """You are analyzing a child's drawing. Describe what you see in a structured way so a story and matching illustrations can be generated.

Respond with ONLY valid JSON in this exact shape (no markdown, no extra text):
{
  "characters": [
    {
      "name": "short name or role (e.g. 'the blue cat', 'a small girl')",
      "gender": "girl, boy, female, male, or neutral (always choose one)",
      "appearance": "2-3 visual details: colors, clothing, features (e.g. 'blue fur, big green eyes, red scarf')"
    }
  ],
  "setting": "one short sentence describing where the scene takes place",
  "objects": ["notable object 1", "notable object 2"],
  "mood": "one word or short phrase (e.g. happy, adventurous, cozy)",
  "colors": ["dominant color 1", "dominant color 2", "dominant color 3"],
  "artStyle": "the child's drawing style in a few words (e.g. 'crayon, bright colors, simple shapes')",
  "childDescription": "the user's text description verbatim if one was provided, otherwise an empty string"
}

Rules:
- Keep all descriptions short and child-friendly.
- If the image is unclear, make reasonable, positive assumptions.
- For each character, capture enough visual detail so an image generator can reproduce the character consistently across multiple scenes.
- Every character MUST have an explicit gender. Decide it once; it will be locked for the whole story and never change.
- Always return at least one character. If there are no clear characters, invent one friendly character that fits the drawing."""


def build_drawing_parse_prompt(user_hint: str | None = None) -> str:
    """
    Vision prompt asking for a strict JSON description of the drawing.
    """
    prompt = DRAWING_PARSE_INSTRUCTIONS
    hint = (user_hint or "").strip()
    if hint:
        prompt += f'\n\nThe child described the drawing as: "{hint}"'
    return prompt


def build_page_text_prompt(drawing: DrawingDescription, language: str) -> str:
    """
    Ask for 5-10 short illustrated pages that only use what was found in the drawing.
    """
    drawing_json = json.dumps(drawing.as_dict(), indent=2, ensure_ascii=False)
    return f"""You are a children's story writer. Using ONLY the following structured description of a child's drawing, write a short story for ages 4-8.

Parsed drawing description (JSON):
{drawing_json}

Requirements:
- Write in {display_name(language)}. Use simple vocabulary suitable for a Grade 2-3 reading level.
- {SAFETY_GUIDANCE}
- Story length: {MIN_PAGES}-{MAX_PAGES} pages. Each "page" is 1-3 short sentences that fit on one illustrated page.
- Reference the drawing's characters BY THE SAME NAME/DESCRIPTION given above, with the same gender. Do not invent major new characters or places.
- Keep the story in the setting described above.
- Clear beginning, middle, and end. End with a positive message or gentle lesson.
- Each page should describe a scene that can be illustrated (action, location, characters present).

Output format: respond with ONLY a JSON array of strings, one string per page. No markdown, no explanation.
Example: ["Page 1 text.", "Page 2 text."]"""


def build_description_page_text_prompt(description: str, language: str) -> str:
    """
    Page prompt used when no drawing was parsed and only the text description is known.
    """
    return f"""Create a magical, child-friendly story based on this description: "{description.strip()}"

Requirements:
- Write the story in {display_name(language)}.
- For ages 4-8, Grade 2-3 reading level. Simple, engaging language.
- Themes of adventure, friendship, or wonder. Positive and uplifting. {SAFETY_GUIDANCE}
- Include the described elements as the main characters. Do not add other major characters.
- Clear beginning, middle, and end. End with a positive message or gentle lesson.
- Each page should describe a scene that can be illustrated.

Output: respond with ONLY a JSON array of {MIN_PAGES}-{MAX_PAGES} strings, one per page (1-3 sentences each). No markdown.
Example: ["Page 1 text.", "Page 2 text."]"""


def build_character_dna(drawing: DrawingDescription | None) -> str:
    """
    Flatten the characters into one block reused verbatim in every illustration prompt.
    """
    if drawing is None or not drawing.characters:
        return ""

    lines: list[str] = []
    for index, character in enumerate(drawing.characters, start=1):
        details = ", ".join(part for part in (character.gender, character.appearance) if part)
        line = f'Character {index}: "{character.name}"'
        if details:
            line += f" — {details}"
        lines.append(line)
    return ". ".join(lines) + "."


def format_character_summary(characters: Sequence[Character]) -> str:
    """
    Compact character list used as the consistency block for converted books.
    """
    entries = []
    for character in characters:
        if character.appearance:
            entries.append(f'"{character.name}" — {character.appearance}')
        else:
            entries.append(f'"{character.name}"')
    return ". ".join(entries)


def build_scene_expansion_prompt(
    page_text: str,
    previous_scene_summary: str = "",
    character_dna: str = "",
    page_index: int = 0,
    total_pages: int = 1,
) -> str:
    """
    Ask the text model for a two-sentence visual brief of one page.

    ``page_index`` is zero-based; the opening and final pages get their own stage notes.
    """
    page_number = page_index + 1
    if page_index == 0:
        stage_note = (
            "This is the OPENING scene. Establish the world and the main character warmly and invitingly."
        )
    elif page_number >= total_pages:
        stage_note = (
            "This is the FINAL scene. Show resolution, happiness, and a satisfying sense of closure."
        )
    else:
        stage_note = (
            f"This is scene {page_number} of {total_pages}, mid-story. Show clear narrative progress."
        )

    sections = [
        "You are a storyboard artist writing a visual brief for a children's picture-book illustrator.",
        f'Story page text: "{page_text.strip()}"',
    ]

    if character_dna:
        sections.append(
            f"Characters: {character_dna}\n"
            "Never change any character's gender, species, colors, or clothing from this description."
        )

    previous = (previous_scene_summary or "").strip()
    if previous:
        sections.append(
            f'Previous illustration summary: "{previous}"\n'
            "CRITICAL: This new scene must look CLEARLY DIFFERENT from the previous one. Change the "
            "location, the time of day, the weather, the characters' poses, or the color palette "
            "(ideally several at once) so the reader can tell the story has moved forward."
        )

    sections.append(stage_note)
    sections.append(
        "Write EXACTLY 2 sentences, in English, describing what to paint:\n"
        "1. The main action in the foreground, with the characters' expressions and poses.\n"
        "2. The setting: time of day, weather, lighting, and overall mood.\n"
        "Be specific and vivid. Output ONLY the description, no labels or preamble."
    )
    return "\n\n".join(sections)


def build_title_summary_prompt(full_text: str) -> str:
    return f"""Read this children's story and create a title and a summary for it.

Story:
---
{full_text.strip()}
---

Rules:
- The title is creative and at most 8 words. It must NOT repeat or paraphrase the opening sentence.
- The summary is one sentence of at most 120 characters.
- Write both in the same language as the story.

Respond with ONLY valid JSON, no markdown: {{"title": "...", "summary": "..."}}"""


def build_simplify_prompt(chunk: str) -> str:
    return f"""Rewrite the following text for children aged 7-10 (Grade 2-4 reading level).

Rules:
- Use short sentences (12 words or fewer when possible). No jargon or complex vocabulary.
- Preserve the core plot EXACTLY. Do NOT invent new events, characters, or story elements. Do NOT add moral lessons unless they were in the original.
- Keep the same tone (adventure, mystery, humor, etc.) but make it age-appropriate.
- If the text contains violence or mature themes, soften them.
- Output ONLY the simplified text. No explanations, headings, or meta-commentary.

Original text:
---
{chunk}
---"""


def build_character_extraction_prompt(text: str) -> str:
    return f"""Read the following children's story text and extract a list of every named character.

For each character, provide:
- name: the character's name or role
- appearance: 2-4 visual details (hair, clothing, colors, species, distinguishing features)

Respond with ONLY a JSON array. No markdown.
Example: [{{"name": "Luna the rabbit", "appearance": "small white rabbit, blue coat, red boots, pink nose"}}]

Story text:
---
{text}
---"""


def build_scene_identification_prompt(text: str) -> str:
    return f"""You are an art director for a children's book. For the given story, identify the key moments worth illustrating, in story order.

For each moment:
1. Write a short scene description (1-2 sentences) specific enough to send directly to an image generator.
2. Name every character in the scene and describe their appearance briefly.
3. Include setting details (indoor/outdoor, time of day, weather).
4. Child-friendly, warm, simple imagery. No dark or violent content.

Respond with ONLY a JSON array of at most {MAX_PAGES} strings. No markdown.
Example: ["A small rabbit in a blue coat stands at the edge of a sunlit forest, looking curious."]

Story:
---
{text}
---"""


def build_drawing_description_prompt() -> str:
    return (
        "Look at this drawing and describe what you see in 2-4 short sentences. "
        "Describe the characters, colors, and setting in a warm, encouraging way a child would enjoy hearing. "
        "Output only the description."
    )


def build_translation_prompt(text: str, target: str, source: str | None = None) -> str:
    source_hint = f"The text is written in {display_name(source)}. " if source else ""
    return (
        f"Translate the following text into {display_name(target)}. {source_hint}"
        "Preserve meaning, tone, and any child-friendly style. "
        "Output only the translated text, with no notes or explanations.\n\n"
        f"Text:\n---\n{text}\n---"
    )
