"""
Single entry point for every text, vision, and image call made by the pipelines.
"""

from __future__ import annotations

import logging
import os
import random
import time
from typing import Any, Callable, Sequence

from doodletales.common import (
    DEFAULT_RETRY_POLICY,
    ChatResult,
    CompletionCallable,
    MalformedResponseError,
    RetryPolicy,
    call_chat_completion,
    call_with_retry,
    strip_code_fences,
)

from .media import GeneratedImage, InlineImage
from .replicate_service import ReplicateImageGenerator

logger = logging.getLogger(__name__)

DEFAULT_TEXT_MODEL = "gemini/gemini-2.5-flash"
DEFAULT_TEXT_TIMEOUT_SECONDS = 60.0
DEFAULT_VISION_TIMEOUT_SECONDS = 60.0


class GenerativeGateway:
    """
    Wraps the chat-completion and image providers behind one retrying interface.

    Every operation raises :class:`~doodletales.common.ExternalServiceError` on
    failure. Transient capacity errors are retried with exponential backoff
    according to ``retry_policy``; everything else propagates immediately.
    """

    def __init__(
        self,
        *,
        text_model: str | None = None,
        vision_model: str | None = None,
        api_key: str | None = None,
        completion_fn: CompletionCallable | None = None,
        image_generator: ReplicateImageGenerator | None = None,
        image_generator_factory: Callable[[], ReplicateImageGenerator] | None = None,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        sleep: Callable[[float], Any] = time.sleep,
        jitter: Callable[[float, float], float] = random.uniform,
        text_timeout: float = DEFAULT_TEXT_TIMEOUT_SECONDS,
        vision_timeout: float = DEFAULT_VISION_TIMEOUT_SECONDS,
    ) -> None:
        self._text_model = (
            text_model
            or os.getenv("DOODLETALES_TEXT_MODEL")
            or os.getenv("LITELLM_MODEL")
            or DEFAULT_TEXT_MODEL
        )
        self._vision_model = (
            vision_model
            or os.getenv("DOODLETALES_VISION_MODEL")
            or os.getenv("LITELLM_MODEL")
            or DEFAULT_TEXT_MODEL
        )
        self._api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("LITELLM_API_KEY")
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion
        self._image_generator = image_generator
        self._image_generator_factory = image_generator_factory or ReplicateImageGenerator
        self._retry_policy = retry_policy
        self._sleep = sleep
        self._jitter = jitter
        self._text_timeout = text_timeout
        self._vision_timeout = vision_timeout

    @property
    def text_model(self) -> str:
        return self._text_model

    @property
    def vision_model(self) -> str:
        return self._vision_model

    @property
    def image_generator(self) -> ReplicateImageGenerator:
        if self._image_generator is None:
            self._image_generator = self._image_generator_factory()
        return self._image_generator

    def generate_text(
        self,
        prompt: str,
        *,
        model: str | None = None,
        temperature: float = 0.8,
        max_output_tokens: int = 4096,
    ) -> str:
        """
        Run a single-turn text completion and return the text with code fences removed.
        """
        messages = [{"role": "user", "content": prompt}]
        result = self._complete(
            label="generate_text",
            model=model or self._text_model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_output_tokens,
            timeout=self._text_timeout,
        )
        return self._clean_text(result, label="generate_text")

    def generate_text_from_image_and_prompt(
        self,
        image: InlineImage,
        prompt: str,
        *,
        model: str | None = None,
        temperature: float = 0.4,
        max_output_tokens: int = 1024,
    ) -> str:
        """
        Send the image and prompt to a multimodal chat model and return its text answer.
        """
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": image.to_data_url()}},
                ],
            }
        ]
        result = self._complete(
            label="generate_text_from_image",
            model=model or self._vision_model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_output_tokens,
            timeout=self._vision_timeout,
        )
        return self._clean_text(result, label="generate_text_from_image")

    def generate_image(
        self,
        prompt: str,
        reference_image: InlineImage | None = None,
        *,
        aspect_ratio: str = "4:3",
    ) -> GeneratedImage:
        """
        Render one illustration and return its bytes.
        """
        # Resolved inside the retried call: client setup errors must surface as ExternalServiceError.
        return call_with_retry(
            lambda: self.image_generator.generate_image(
                prompt,
                reference_image=reference_image,
                aspect_ratio=aspect_ratio,
            ),
            label="generate_image",
            policy=self._retry_policy,
            sleep=self._sleep,
            jitter=self._jitter,
        )

    def _complete(
        self,
        *,
        label: str,
        model: str,
        messages: Sequence[dict[str, Any]],
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> ChatResult:
        logger.debug("[%s] model=%s temperature=%s", label, model, temperature)
        return call_with_retry(
            lambda: self._completion_fn(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                api_key=self._api_key,
                timeout=timeout,
            ),
            label=label,
            policy=self._retry_policy,
            sleep=self._sleep,
            jitter=self._jitter,
        )

    @staticmethod
    def _clean_text(result: ChatResult, *, label: str) -> str:
        text = strip_code_fences(result.text)
        if not text:
            raise MalformedResponseError(f"{label} returned an empty response.", raw=result.text)
        return text
