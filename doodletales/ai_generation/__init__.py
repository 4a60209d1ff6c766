"""
AI generation package for DoodleTales: gateway, image provider, and illustration prompts.
"""

from .gateway import GenerativeGateway
from .media import GeneratedImage, InlineImage, parse_data_url, to_data_url
from .prompting import BOOK_ILLUSTRATION_STYLE, ILLUSTRATION_STYLE, build_illustration_prompt
from .replicate_service import ReplicateImageGenerator

__all__ = [
    "BOOK_ILLUSTRATION_STYLE",
    "GeneratedImage",
    "GenerativeGateway",
    "ILLUSTRATION_STYLE",
    "InlineImage",
    "ReplicateImageGenerator",
    "build_illustration_prompt",
    "parse_data_url",
    "to_data_url",
]
