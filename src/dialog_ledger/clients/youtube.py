"""
YouTube Data API video lookup client.
"""

import html
import logging
from typing import Any

import httpx

from ..core.models import VideoReference
from .base import ClientError, VideoSearchClient

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.googleapis.com/youtube/v3"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
THUMBNAIL_PREFERENCE = ("high", "medium", "default")


class YouTubeClient(VideoSearchClient):
    """Finds the top YouTube video for a query."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        safe_search: str = "moderate",
        **kwargs: Any,
    ) -> None:
        super().__init__("youtube", api_key, **kwargs)

        if not api_key:
            raise ValueError("YouTube API key is required")

        self.safe_search = safe_search
        self._http_client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(self.timeout),
        )

    async def search(self, query: str) -> VideoReference | None:
        response = await self.retry_with_backoff(self._make_search_request, query)
        return self._parse_response(response.json())

    async def _make_search_request(self, query: str) -> httpx.Response:
        try:
            response = await self._http_client.get(
                "/search",
                params={
                    "part": "snippet",
                    "q": query,
                    "type": "video",
                    "maxResults": 1,
                    "safeSearch": self.safe_search,
                    "key": self.api_key,
                },
            )
        except httpx.HTTPError as e:
            raise ClientError(
                f"Search request failed: {e}",
                provider=self.provider_name,
                details={"error_type": type(e).__name__},
            ) from e

        if response.status_code != 200:
            self._handle_http_error(response)

        return response

    def _parse_response(self, data: dict[str, Any]) -> VideoReference | None:
        """Map the first search hit onto a VideoReference."""
        items = data.get("items") or []
        if not items:
            logger.debug("Video search returned no results")
            return None

        item = items[0]
        video_id = item.get("id", {}).get("videoId")
        snippet = item.get("snippet", {})
        thumbnails = snippet.get("thumbnails", {})

        thumbnail = next(
            (
                thumbnails[size]["url"]
                for size in THUMBNAIL_PREFERENCE
                if thumbnails.get(size, {}).get("url")
            ),
            None,
        )

        if not video_id or not snippet.get("title") or not thumbnail:
            logger.warning(f"Incomplete video search result: {item.get('id')}")
            return None

        return VideoReference(
            title=html.unescape(snippet["title"]),
            url=WATCH_URL.format(video_id=video_id),
            thumbnail=thumbnail,
        )

    async def close(self) -> None:
        await self._http_client.aclose()
