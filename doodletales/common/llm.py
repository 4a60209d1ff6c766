"""
Thin wrapper over LiteLLM chat completions used by the generative gateway.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from litellm import completion

from .errors import MalformedResponseError

logger = logging.getLogger(__name__)

ChatMessage = Mapping[str, Any]


@dataclass
class ChatResult:
    """
    Text of the first choice plus the untouched provider response.
    """

    text: str
    raw: Any
    finish_reason: str | None = None


CompletionCallable = Callable[..., ChatResult]


def _message_text(content: Any) -> str:
    # Some providers answer with a list of typed parts instead of a plain string.
    if isinstance(content, list):
        return "".join(
            str(part.get("text", "")) for part in content if isinstance(part, Mapping)
        )
    return str(content)


def call_chat_completion(
    *,
    model: str,
    messages: Sequence[ChatMessage],
    temperature: float | None = None,
    max_tokens: int | None = None,
    api_key: str | None = None,
    timeout: float | None = None,
    **extra_kwargs: Any,
) -> ChatResult:
    """
    Run one LiteLLM ``completion`` call and return the first choice's text.

    Raises
    ------
    MalformedResponseError
        If the response has no choices or the message carries no text.
    """
    optional = {
        "temperature": temperature,
        "max_tokens": max_tokens,
        "api_key": api_key,
        "timeout": timeout,
    }
    payload: dict[str, Any] = {"model": model, "messages": list(messages)}
    payload.update({key: value for key, value in optional.items() if value is not None})
    payload.update(extra_kwargs)

    response = completion(**payload)

    try:
        choice = response["choices"][0]
        content = choice["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedResponseError("Unexpected LiteLLM response format.") from exc

    if content is None:
        raise MalformedResponseError("LiteLLM response did not include any text content.")

    finish_reason = choice.get("finish_reason") if isinstance(choice, Mapping) else None
    if finish_reason == "length":
        logger.warning("Completion from %s was cut off at max_tokens=%s", model, max_tokens)

    return ChatResult(text=_message_text(content).strip(), raw=response, finish_reason=finish_reason)
