"""
Content source clients.

This package provides the text generation and video lookup sources a
submission fans out to, behind the TextGenerationClient and
VideoSearchClient abstractions.
"""

from .base import (
    AuthenticationError,
    BaseClient,
    ClientError,
    RateLimitError,
    RetryableError,
    TextGenerationClient,
    VideoSearchClient,
)
from .gemini import GeminiClient
from .youtube import YouTubeClient

__all__ = [
    "BaseClient",
    "TextGenerationClient",
    "VideoSearchClient",
    "ClientError",
    "AuthenticationError",
    "RateLimitError",
    "RetryableError",
    "GeminiClient",
    "YouTubeClient",
]
