"""
Structured representation of what the vision model saw in a child's drawing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence


def _coerce_optional_str(value: Any) -> str | None:
    if value is None:
        return None

    text = str(value).strip()
    return text or None


def _normalize_string_list(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()

    if isinstance(value, str):
        parts = [item.strip() for item in value.split(",")]
    elif isinstance(value, Sequence):
        parts = [str(item).strip() for item in value if item is not None]
    else:
        raise TypeError("Expected a string or sequence of strings.")

    return tuple(filter(None, parts))


def _normalize_gender(value: Any) -> str | None:
    text = _coerce_optional_str(value)
    if text is None:
        return None
    lowered = text.lower()
    if lowered in {"unknown", "n/a", "none", "unspecified"}:
        return None
    return lowered


@dataclass(frozen=True)
class Character:
    """A character the story and every illustration must keep consistent."""

    name: str
    appearance: str = ""
    gender: str | None = None

    @classmethod
    def from_value(cls, value: Any) -> "Character | None":
        if isinstance(value, Mapping):
            name = _coerce_optional_str(value.get("name") or value.get("role"))
            if name is None:
                return None
            return cls(
                name=name,
                appearance=_coerce_optional_str(
                    value.get("appearance") or value.get("description") or value.get("look")
                )
                or "",
                gender=_normalize_gender(value.get("gender") or value.get("sex")),
            )

        name = _coerce_optional_str(value)
        if name is None:
            return None
        return cls(name=name)

    def as_dict(self) -> dict[str, Any]:
        return {"name": self.name, "appearance": self.appearance, "gender": self.gender}


DEFAULT_CHARACTER = Character(
    name="Sunny",
    appearance="a small, cheerful friend with a round smiling face, rosy cheeks, and a bright yellow scarf",
    gender=None,
)


def _normalize_characters(value: Any) -> tuple[Character, ...]:
    if value is None:
        return ()

    if isinstance(value, Mapping):
        if "name" in value:
            items: list[Any] = [value]
        else:
            items = [{"name": name, "appearance": details} for name, details in value.items()]
    elif isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        items = list(value)
    elif isinstance(value, str):
        items = [value]
    else:
        raise TypeError("characters must be a mapping, sequence, or string.")

    characters: list[Character] = []
    for item in items:
        character = Character.from_value(item)
        if character is not None:
            characters.append(character)
    return tuple(characters)


@dataclass(frozen=True)
class DrawingDescription:
    """
    Canonical description of a child's drawing.

    Attributes
    ----------
    characters:
        Characters found in the drawing. Never empty; a default friendly
        character is supplied when the model finds none.
    setting:
        One short sentence describing where the scene takes place.
    objects:
        Notable objects in the drawing.
    mood:
        One word or short phrase capturing the feeling of the drawing.
    colors:
        Dominant colors.
    art_style:
        How the child drew it (crayon, marker, simple shapes, ...).
    child_description:
        The free-text hint the child or parent typed, if any.
    """

    characters: tuple[Character, ...] = (DEFAULT_CHARACTER,)
    setting: str = ""
    objects: tuple[str, ...] = ()
    mood: str = ""
    colors: tuple[str, ...] = ()
    art_style: str = ""
    child_description: str = ""

    def __post_init__(self) -> None:
        if not self.characters:
            object.__setattr__(self, "characters", (DEFAULT_CHARACTER,))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DrawingDescription":
        """
        Build a description from loosely-shaped model JSON (camelCase or snake_case keys).
        """
        if not isinstance(data, Mapping):
            raise TypeError("Drawing description must be a JSON object.")

        return cls(
            characters=_normalize_characters(data.get("characters")),
            setting=_coerce_optional_str(data.get("setting")) or "",
            objects=_normalize_string_list(data.get("objects")),
            mood=_coerce_optional_str(data.get("mood")) or "",
            colors=_normalize_string_list(data.get("colors") or data.get("colours")),
            art_style=_coerce_optional_str(data.get("artStyle") or data.get("art_style")) or "",
            child_description=_coerce_optional_str(
                data.get("childDescription") or data.get("child_description")
            )
            or "",
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "characters": [character.as_dict() for character in self.characters],
            "setting": self.setting,
            "objects": list(self.objects),
            "mood": self.mood,
            "colors": list(self.colors),
            "artStyle": self.art_style,
            "childDescription": self.child_description,
        }
