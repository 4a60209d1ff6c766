"""
Helpers for turning model text into validated JSON payloads.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

T = TypeVar("T")

_FENCE_OPEN = re.compile(r"^\s*```[a-zA-Z]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```\s*$")


@dataclass(frozen=True)
class Parsed(Generic[T]):
    """The model response matched the expected shape."""

    value: T


@dataclass(frozen=True)
class Malformed:
    """The model response could not be used; keeps the raw text for logging."""

    raw_text: str
    reason: str


ParseResult = Union[Parsed[T], Malformed]

Validator = Callable[[Any], T]


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json fence and a trailing ``` fence, if present."""
    stripped = _FENCE_OPEN.sub("", text, count=1)
    stripped = _FENCE_CLOSE.sub("", stripped, count=1)
    return stripped.strip()


def parse_json_response(text: str, validator: Validator[T] | None = None) -> ParseResult:
    """
    Decode ``text`` as JSON and run ``validator`` over the decoded value.

    The validator raises ``ValueError`` or ``TypeError`` to reject a payload;
    both become a :class:`Malformed` result instead of propagating.
    """
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        return Malformed(raw_text=text or "", reason="empty response")

    try:
        decoded = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        return Malformed(raw_text=text, reason=f"invalid JSON: {exc.msg}")

    if validator is None:
        return Parsed(decoded)

    try:
        return Parsed(validator(decoded))
    except (TypeError, ValueError) as exc:
        return Malformed(raw_text=text, reason=str(exc))


def string_list(value: Any) -> list[str]:
    """Validator: a non-empty JSON array of non-blank strings."""
    if not isinstance(value, list):
        raise ValueError("expected a JSON array")
    items = [str(item).strip() for item in value if isinstance(item, str)]
    items = [item for item in items if item]
    if not items:
        raise ValueError("expected at least one non-empty string")
    return items


def json_object(value: Any) -> dict[str, Any]:
    """Validator: a JSON object."""
    if not isinstance(value, dict):
        raise ValueError("expected a JSON object")
    return value
