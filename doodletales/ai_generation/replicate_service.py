"""
Integration with Replicate for storybook illustration generation.
"""

from __future__ import annotations

import logging
import mimetypes
import os
from collections.abc import Iterable as IterableABC
from typing import Any, Callable

import replicate
import requests

from doodletales.common import MalformedResponseError

from .media import DEFAULT_IMAGE_MIME_TYPE, GeneratedImage, InlineImage

logger = logging.getLogger(__name__)

DEFAULT_REPLICATE_MODEL = "black-forest-labs/flux-schnell"
DEFAULT_IMAGE_TIMEOUT_SECONDS = 120.0
DEFAULT_OUTPUT_FORMAT = "png"


def _build_flux_schnell_input(
    *,
    prompt: str,
    aspect_ratio: str,
    reference_image: str | None,
) -> dict[str, Any]:
    if reference_image is not None:
        raise ValueError("flux-schnell does not accept a reference image.")
    return {
        "prompt": prompt,
        "aspect_ratio": aspect_ratio,
        "num_outputs": 1,
        "output_format": DEFAULT_OUTPUT_FORMAT,
        "disable_safety_checker": False,
    }


def _build_flux_pro_input(
    *,
    prompt: str,
    aspect_ratio: str,
    reference_image: str | None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "prompt": prompt,
        "aspect_ratio": aspect_ratio,
        "output_format": DEFAULT_OUTPUT_FORMAT,
        "safety_tolerance": 2,
        "prompt_upsampling": False,
    }
    if reference_image is not None:
        payload["image_prompt"] = reference_image
    return payload


def _build_flux_kontext_input(
    *,
    prompt: str,
    aspect_ratio: str,
    reference_image: str | None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "prompt": prompt,
        "output_format": DEFAULT_OUTPUT_FORMAT,
        "safety_tolerance": 2,
        "aspect_ratio": aspect_ratio,
    }
    if reference_image is not None:
        payload["input_image"] = reference_image
    return payload


_MODEL_INPUT_BUILDERS: dict[str, Callable[..., dict[str, Any]]] = {
    "black-forest-labs/flux-schnell": _build_flux_schnell_input,
    "black-forest-labs/flux-1.1-pro": _build_flux_pro_input,
    "black-forest-labs/flux-kontext-pro": _build_flux_kontext_input,
}


def _build_replicate_input_payload(
    *,
    model_identifier: str,
    prompt: str,
    aspect_ratio: str,
    reference_image: str | None,
) -> dict[str, Any]:
    normalized_identifier = model_identifier.strip().lower()
    builder = _MODEL_INPUT_BUILDERS.get(normalized_identifier)
    if builder is None and ":" in normalized_identifier:
        base_identifier = normalized_identifier.split(":", maxsplit=1)[0]
        builder = _MODEL_INPUT_BUILDERS.get(base_identifier)
    if builder is None:
        supported_models = ", ".join(sorted(set(_MODEL_INPUT_BUILDERS)))
        raise ValueError(
            "Model identifier "
            f"'{model_identifier}' is not configured with a default input payload. "
            f"Supported models: {supported_models}."
        )

    return builder(
        prompt=prompt,
        aspect_ratio=aspect_ratio,
        reference_image=reference_image,
    )


class ReplicateImageGenerator:
    """
    Convenience wrapper around the Replicate client for storybook illustrations.

    Parameters
    ----------
    api_token:
        Replicate API token. Falls back to ``REPLICATE_API_TOKEN`` environment variable.
    model_identifier:
        Model string in the ``owner/model`` or ``owner/model:version`` format. Falls back to
        ``REPLICATE_MODEL`` and then to ``black-forest-labs/flux-schnell``.
    client:
        Optional pre-configured :class:`replicate.Client`. Mainly useful for testing.
        When omitted, a client is created on first use and reused afterwards.
    session:
        Optional :class:`requests.Session` used to download URL outputs.
    timeout:
        Seconds allowed for the prediction and for downloading its output.
    """

    def __init__(
        self,
        *,
        api_token: str | None = None,
        model_identifier: str | None = None,
        client: replicate.Client | None = None,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_IMAGE_TIMEOUT_SECONDS,
    ) -> None:
        self._api_token = api_token or os.getenv("REPLICATE_API_TOKEN")
        if not self._api_token and not client:
            raise ValueError(
                "Replicate API token is required. Set REPLICATE_API_TOKEN or pass api_token."
            )

        self._model_identifier = (
            model_identifier or os.getenv("REPLICATE_MODEL") or DEFAULT_REPLICATE_MODEL
        )
        self._client = client
        self._session = session
        self._timeout = timeout

    @property
    def model_identifier(self) -> str:
        """Return the model identifier currently used."""
        return self._model_identifier

    @property
    def client(self) -> replicate.Client:
        if self._client is None:
            logger.debug("Creating Replicate client for %s", self._model_identifier)
            self._client = replicate.Client(api_token=self._api_token, timeout=self._timeout)
        return self._client

    def generate_image(
        self,
        prompt: str,
        *,
        reference_image: InlineImage | None = None,
        aspect_ratio: str = "4:3",
        **model_kwargs: Any,
    ) -> GeneratedImage:
        """
        Generate a single illustration with the configured Replicate model.

        Parameters
        ----------
        prompt:
            Full illustration prompt (scene first, style directive last).
        reference_image:
            Optional image the model should take visual cues from. Only models with
            an image input accept it.
        aspect_ratio:
            Aspect ratio understood by the model, e.g. ``"4:3"`` or ``"1:1"``.
        **model_kwargs:
            Additional keyword arguments forwarded directly to the Replicate model input.

        Returns
        -------
        GeneratedImage
            Bytes of the first image produced by the model.
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt must be a non-empty string.")

        replicate_input = _build_replicate_input_payload(
            model_identifier=self._model_identifier,
            prompt=prompt.strip(),
            aspect_ratio=aspect_ratio,
            reference_image=reference_image.to_data_url() if reference_image else None,
        )
        # Allow the caller to tweak model-specific knobs (e.g., seed, go_fast).
        replicate_input.update(model_kwargs)

        outputs = self.client.run(self._model_identifier, input=replicate_input)
        collected = normalize_image_outputs(outputs)
        if not collected:
            raise MalformedResponseError(
                f"Replicate model '{self._model_identifier}' returned no image outputs."
            )
        return self._read_output(collected[0], output_format=replicate_input.get("output_format"))

    def _read_output(self, output: Any, *, output_format: str | None) -> GeneratedImage:
        fallback_mime = (
            mimetypes.types_map.get(f".{output_format}", DEFAULT_IMAGE_MIME_TYPE)
            if output_format
            else DEFAULT_IMAGE_MIME_TYPE
        )

        if hasattr(output, "read"):
            data = output.read()
            url = getattr(output, "url", None)
            mime_type = _guess_mime(str(url)) if url else None
            return GeneratedImage(data=bytes(data), mime_type=mime_type or fallback_mime)

        if isinstance(output, bytes):
            return GeneratedImage(data=output, mime_type=fallback_mime)

        url = str(output)
        if not url.lower().startswith(("http://", "https://")):
            raise MalformedResponseError(
                f"Unsupported Replicate output: {url[:80]!r}", raw=url
            )

        session = self._session or requests
        response = session.get(url, timeout=self._timeout)
        response.raise_for_status()
        mime_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        if not mime_type.startswith("image/"):
            mime_type = _guess_mime(url) or fallback_mime
        return GeneratedImage(data=response.content, mime_type=mime_type)


def _guess_mime(url: str) -> str | None:
    mime_type, _ = mimetypes.guess_type(url.split("?", 1)[0])
    return mime_type


def normalize_image_outputs(raw: Any) -> list[Any]:
    """
    Flatten the outputs returned by Replicate into a list of file outputs or URL strings.
    """

    if raw is None:
        return []

    if isinstance(raw, (str, bytes)) or hasattr(raw, "read"):
        return [raw]

    if isinstance(raw, IterableABC):
        collected = list(raw)
        if not collected:
            return []

        # Streaming models yield a URL one character at a time.
        if all(isinstance(item, str) and len(item) == 1 for item in collected):
            return ["".join(collected)]

        normalized: list[Any] = []
        for item in collected:
            if isinstance(item, (str, bytes)) or hasattr(item, "read"):
                normalized.append(item)
            elif isinstance(item, IterableABC):
                normalized.extend(normalize_image_outputs(item))
            elif item is not None:
                normalized.append(str(item))
        return normalized

    return [str(raw)]
