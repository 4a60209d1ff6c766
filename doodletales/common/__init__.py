"""
Common utilities shared across DoodleTales modules.
"""

from .errors import (
    BookConversionError,
    DocumentParseError,
    DoodleTalesError,
    DrawingParseError,
    ExternalServiceError,
    GenerationError,
    MalformedResponseError,
    NarrationError,
    StorageError,
    StoryGenerationError,
)
from .llm import ChatResult, CompletionCallable, call_chat_completion
from .parsing import Malformed, Parsed, ParseResult, parse_json_response, strip_code_fences
from .retry import DEFAULT_RETRY_POLICY, RetryPolicy, call_with_retry, is_retryable

__all__ = [
    "BookConversionError",
    "DocumentParseError",
    "ChatResult",
    "CompletionCallable",
    "DEFAULT_RETRY_POLICY",
    "DoodleTalesError",
    "DrawingParseError",
    "ExternalServiceError",
    "GenerationError",
    "Malformed",
    "MalformedResponseError",
    "NarrationError",
    "ParseResult",
    "Parsed",
    "RetryPolicy",
    "StorageError",
    "StoryGenerationError",
    "call_chat_completion",
    "call_with_retry",
    "is_retryable",
    "parse_json_response",
    "strip_code_fences",
]
