"""
Integration with the ElevenLabs text-to-speech API.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import requests

from doodletales.common import (
    DEFAULT_RETRY_POLICY,
    MalformedResponseError,
    RetryPolicy,
    call_with_retry,
)

from .alignment import CharacterAlignment

logger = logging.getLogger(__name__)

ELEVENLABS_API_BASE = "https://api.elevenlabs.io"
DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"
DEFAULT_TTS_MODEL = "eleven_v3"
DEFAULT_OUTPUT_FORMAT = "mp3_44100_128"
DEFAULT_SPEECH_TIMEOUT_SECONDS = 90.0
MIN_SPEED = 0.7
MAX_SPEED = 1.2

_CHILD_FRIENDLY_MARKERS = ("young", "child", "kid")


@dataclass(frozen=True)
class VoiceSettings:
    """
    Voice and delivery settings sent with each synthesis request.

    ``speed`` is clamped to the range the provider accepts.
    """

    voice_id: str = DEFAULT_VOICE_ID
    model_id: str = DEFAULT_TTS_MODEL
    stability: float = 0.5
    similarity_boost: float = 0.75
    style: float = 0.65
    use_speaker_boost: bool = True
    speed: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "speed", min(max(float(self.speed), MIN_SPEED), MAX_SPEED))

    @classmethod
    def from_env(cls, **overrides: Any) -> "VoiceSettings":
        values: dict[str, Any] = {
            "voice_id": os.getenv("ELEVENLABS_VOICE_ID") or DEFAULT_VOICE_ID,
            "model_id": os.getenv("ELEVENLABS_MODEL_ID") or DEFAULT_TTS_MODEL,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    def to_payload(self) -> dict[str, Any]:
        return {
            "stability": self.stability,
            "similarity_boost": self.similarity_boost,
            "style": self.style,
            "use_speaker_boost": self.use_speaker_boost,
            "speed": self.speed,
        }


@dataclass(frozen=True)
class SpeechSynthesis:
    audio: bytes
    mime_type: str
    alignment: CharacterAlignment


@dataclass(frozen=True)
class Voice:
    voice_id: str
    name: str
    category: str = ""
    description: str = ""
    labels: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Voice":
        labels = data.get("labels") or {}
        return cls(
            voice_id=str(data.get("voice_id") or ""),
            name=str(data.get("name") or ""),
            category=str(data.get("category") or ""),
            description=str(data.get("description") or ""),
            labels={str(key): str(value) for key, value in labels.items()},
        )

    @property
    def is_child_friendly(self) -> bool:
        haystack = " ".join([self.name, self.description, *self.labels.values()]).lower()
        if any(marker in haystack for marker in _CHILD_FRIENDLY_MARKERS):
            return True
        return self.category.lower() == "generated"


@dataclass(frozen=True)
class VoiceCatalog:
    voices: tuple[Voice, ...]
    child_friendly: tuple[Voice, ...]


class ElevenLabsSpeechProvider:
    """
    Thin client for the ElevenLabs REST API built on :mod:`requests`.

    Parameters
    ----------
    api_key:
        ElevenLabs API key. Falls back to ``ELEVENLABS_API_KEY``.
    default_voice:
        Voice settings used when a call does not pass its own.
    session:
        Optional :class:`requests.Session`; one is created on first use otherwise.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        default_voice: VoiceSettings | None = None,
        session: requests.Session | None = None,
        base_url: str = ELEVENLABS_API_BASE,
        output_format: str = DEFAULT_OUTPUT_FORMAT,
        timeout: float = DEFAULT_SPEECH_TIMEOUT_SECONDS,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        sleep: Callable[[float], Any] = time.sleep,
        jitter: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self._api_key = api_key or os.getenv("ELEVENLABS_API_KEY")
        if not self._api_key:
            raise ValueError("ElevenLabs API key is required. Set ELEVENLABS_API_KEY or pass api_key.")
        self._default_voice = default_voice or VoiceSettings.from_env()
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._output_format = output_format
        self._timeout = timeout
        self._retry_policy = retry_policy
        self._sleep = sleep
        self._jitter = jitter

    @property
    def default_voice(self) -> VoiceSettings:
        return self._default_voice

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({"xi-api-key": self._api_key, "Accept": "application/json"})
        return self._session

    def synthesize_with_timestamps(
        self,
        text: str,
        voice: VoiceSettings | None = None,
    ) -> SpeechSynthesis:
        """
        Synthesize ``text`` and return audio with per-character timings over ``text``.
        """
        settings = voice or self._default_voice
        data = self._request_json(
            "POST",
            f"/v1/text-to-speech/{settings.voice_id}/with-timestamps",
            label="synthesize_with_timestamps",
            json=self._speech_payload(text, settings),
            params={"output_format": self._output_format},
        )

        audio_b64 = data.get("audio_base64")
        alignment_payload = data.get("alignment")
        if not audio_b64 or not isinstance(alignment_payload, Mapping):
            raise MalformedResponseError(
                "ElevenLabs response is missing 'audio_base64' or 'alignment'.",
                raw=str(list(data))[:200],
            )

        try:
            audio = base64.b64decode(audio_b64)
            alignment = CharacterAlignment.from_mapping(alignment_payload)
        except (binascii.Error, ValueError) as exc:
            raise MalformedResponseError(f"ElevenLabs response could not be decoded: {exc}") from exc

        logger.info(
            "Synthesized %d characters (%d bytes of audio) with voice %s",
            len(text),
            len(audio),
            settings.voice_id,
        )
        return SpeechSynthesis(audio=audio, mime_type="audio/mpeg", alignment=alignment)

    def synthesize(self, text: str, voice: VoiceSettings | None = None) -> bytes:
        """
        Synthesize ``text`` and return the raw audio bytes, without timings.
        """
        settings = voice or self._default_voice
        response = self._request(
            "POST",
            f"/v1/text-to-speech/{settings.voice_id}",
            label="synthesize",
            json=self._speech_payload(text, settings),
            params={"output_format": self._output_format},
            headers={"Accept": "audio/mpeg"},
        )
        if not response.content:
            raise MalformedResponseError("ElevenLabs returned an empty audio body.")
        return response.content

    def list_voices(self) -> VoiceCatalog:
        data = self._request_json("GET", "/v1/voices", label="list_voices")
        voices = tuple(
            Voice.from_mapping(item) for item in data.get("voices") or [] if isinstance(item, Mapping)
        )
        child_friendly = tuple(voice for voice in voices if voice.is_child_friendly)
        return VoiceCatalog(voices=voices, child_friendly=child_friendly)

    @staticmethod
    def _speech_payload(text: str, settings: VoiceSettings) -> dict[str, Any]:
        if not text or not text.strip():
            raise ValueError("Text to synthesize must be a non-empty string.")
        return {
            "text": text,
            "model_id": settings.model_id,
            "voice_settings": settings.to_payload(),
        }

    def _request(self, method: str, path: str, *, label: str, **kwargs: Any) -> requests.Response:
        url = f"{self._base_url}{path}"

        def send() -> requests.Response:
            response = self.session.request(method, url, timeout=self._timeout, **kwargs)
            response.raise_for_status()
            return response

        return call_with_retry(
            send,
            label=label,
            policy=self._retry_policy,
            sleep=self._sleep,
            jitter=self._jitter,
        )

    def _request_json(self, method: str, path: str, *, label: str, **kwargs: Any) -> dict[str, Any]:
        response = self._request(method, path, label=label, **kwargs)
        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponseError(f"{label} returned invalid JSON.", raw=response.text[:200]) from exc
        if not isinstance(data, dict):
            raise MalformedResponseError(f"{label} returned an unexpected JSON shape.")
        return data
