"""
Abstract base clients for content sources.

A submission draws on two kinds of external source: a text generator that
streams an answer and a video search that returns at most one hit. Both are
best-effort; their errors derive from ClientError and never abort a
submission.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

import httpx

from ..core.models import VideoReference

logger = logging.getLogger(__name__)


class ClientError(Exception):
    """Base exception for content source errors."""

    def __init__(
        self,
        message: str,
        provider: str,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.provider = provider
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.provider}: {self.message}"


class AuthenticationError(ClientError):
    """Provider rejected the configured API key."""

    pass


class RateLimitError(ClientError):
    """Rate limit exceeded."""

    def __init__(
        self, message: str, provider: str, retry_after: int | None = None, **kwargs: Any
    ) -> None:
        super().__init__(message, provider, **kwargs)
        self.retry_after = retry_after


class RetryableError(ClientError):
    """Error that can be retried."""

    pass


class BaseClient(ABC):
    """Shared configuration, HTTP error mapping and retry logic."""

    def __init__(
        self, provider_name: str, api_key: str | None = None, **kwargs: Any
    ) -> None:
        self.provider_name = provider_name
        self.api_key = api_key

        self.timeout = kwargs.get("timeout", 60)
        self.max_retries = kwargs.get("max_retries", 3)
        self.base_delay = kwargs.get("base_delay", 1.0)
        self.max_delay = kwargs.get("max_delay", 60.0)

        logger.info(f"Initialized {self.provider_name} client")

    def _handle_http_error(self, response: httpx.Response) -> None:
        """Map a non-success HTTP response onto the ClientError hierarchy."""
        try:
            error_data = response.json()
            error_message = error_data.get("error", {}).get(
                "message", f"HTTP {response.status_code}"
            )
        except ValueError:
            error_message = f"HTTP {response.status_code}: {response.text[:200]}"

        details = {"status_code": response.status_code}

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Authentication failed: {error_message}",
                provider=self.provider_name,
                details=details,
            )
        elif response.status_code == 429:
            retry_after = None
            if "retry-after" in response.headers:
                try:
                    retry_after = int(response.headers["retry-after"])
                except ValueError:
                    pass

            raise RateLimitError(
                f"Rate limit exceeded: {error_message}",
                provider=self.provider_name,
                retry_after=retry_after,
                details=details,
            )
        elif response.status_code == 408 or response.status_code >= 500:
            raise RetryableError(
                f"Service temporarily unavailable: {error_message}",
                provider=self.provider_name,
                details=details,
            )
        else:
            raise ClientError(
                f"API error: {error_message}",
                provider=self.provider_name,
                details=details,
            )

    async def retry_with_backoff(
        self, operation: Any, *args: Any, **kwargs: Any
    ) -> Any:
        """
        Execute operation with exponential backoff retry logic.

        Only RetryableError is retried; other client errors propagate at once.
        """
        last_exception: RetryableError | None = None

        for attempt in range(self.max_retries + 1):
            try:
                return await operation(*args, **kwargs)
            except RetryableError as e:
                last_exception = e
                if attempt == self.max_retries:
                    break

                delay = min(self.base_delay * (2**attempt), self.max_delay)
                logger.warning(
                    f"Attempt {attempt + 1} failed for {self.provider_name}: {e}. "
                    f"Retrying in {delay:.2f}s"
                )
                await asyncio.sleep(delay)

        if last_exception is not None:
            raise last_exception
        raise ClientError("Operation failed without retryable errors", self.provider_name)

    async def __aenter__(self) -> "BaseClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider='{self.provider_name}')"


class TextGenerationClient(BaseClient):
    """Source of a streamed answer."""

    @abstractmethod
    def generate(self, prompt: str) -> AsyncIterator[str]:
        """
        Stream answer fragments for a prompt.

        The iterator is finite; exhausting it means the answer is complete.

        Raises:
            ClientError: Provider errors
        """
        pass


class VideoSearchClient(BaseClient):
    """Source of a single related video."""

    @abstractmethod
    async def search(self, query: str) -> VideoReference | None:
        """
        Find the best matching video.

        Returns:
            The top hit, or None when nothing matched

        Raises:
            ClientError: Provider errors
        """
        pass
