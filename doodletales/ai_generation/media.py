"""
Small value types for images moving between the gateway, storage, and prompts.
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
from dataclasses import dataclass
from pathlib import Path

PathLike = str | Path

DEFAULT_IMAGE_MIME_TYPE = "image/png"

_EXTENSIONS_BY_MIME = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "application/pdf": "pdf",
}


def to_data_url(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def parse_data_url(url: str) -> tuple[str, bytes]:
    """Split a ``data:<mime>;base64,<payload>`` URL into its MIME type and bytes."""
    if not url.startswith("data:") or "," not in url:
        raise ValueError("Expected a base64 data URL.")

    header, _, payload = url.partition(",")
    if not header.endswith(";base64"):
        raise ValueError("Only base64-encoded data URLs are supported.")

    mime_type = header[len("data:") : -len(";base64")] or "application/octet-stream"
    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise ValueError("Data URL payload is not valid base64.") from exc
    return mime_type, data


def extension_for(mime_type: str) -> str:
    known = _EXTENSIONS_BY_MIME.get(mime_type.lower())
    if known:
        return known
    guessed = mimetypes.guess_extension(mime_type)
    return guessed.lstrip(".") if guessed else "bin"


@dataclass(frozen=True)
class InlineImage:
    """An image supplied by the caller, e.g. the child's uploaded drawing."""

    mime_type: str
    data: bytes

    @classmethod
    def from_base64(cls, payload: str, mime_type: str = "image/jpeg") -> "InlineImage":
        if payload.startswith("data:"):
            parsed_mime, data = parse_data_url(payload)
            return cls(mime_type=parsed_mime, data=data)
        try:
            data = base64.b64decode(payload, validate=True)
        except binascii.Error as exc:
            raise ValueError("Image payload is not valid base64.") from exc
        return cls(mime_type=mime_type, data=data)

    @classmethod
    def from_path(cls, path: PathLike) -> "InlineImage":
        image_path = Path(path).expanduser()
        if not image_path.exists():
            raise FileNotFoundError(f"Image not found at '{image_path}'.")
        mime_type, _ = mimetypes.guess_type(image_path.name)
        return cls(mime_type=mime_type or "image/jpeg", data=image_path.read_bytes())

    def to_data_url(self) -> str:
        return to_data_url(self.data, self.mime_type)


@dataclass(frozen=True)
class GeneratedImage:
    """Image bytes returned by the image-generation provider."""

    data: bytes
    mime_type: str = DEFAULT_IMAGE_MIME_TYPE

    def to_data_url(self) -> str:
        return to_data_url(self.data, self.mime_type)
