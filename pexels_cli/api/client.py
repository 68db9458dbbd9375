"""
Async client for the Pexels video API with quota tracking and error mapping.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import aiohttp
from pydantic import ValidationError

from pexels_cli.exceptions import (
    AuthenticationError,
    ProviderAPIError,
    ProviderUnavailableError,
    RateLimitExceededError,
    VideoNotFoundError,
)
from pexels_cli.models.media import RateLimitInfo, SearchPage, SearchParams, Video

from .rate_limiter import RateLimitTracker

log = logging.getLogger(__name__)


class PexelsAPIClient:
    """
    Async client for the Pexels REST API (v1 video endpoints).

    Features:
    - Quota bookkeeping from ``X-Ratelimit-*`` response headers
    - Call pacing that backs off on HTTP 429
    - Connection pooling
    - HTTP status codes mapped onto the application's provider errors
    """

    BASE_URL = "https://api.pexels.com/"

    def __init__(
        self, api_key: str, max_workers: int = 3, base_url: Optional[str] = None
    ):
        """
        Initializes the API client.

        Args:
            api_key: Pexels API key, sent as the ``Authorization`` header.
            max_workers: The number of concurrent workers, used to tune the connection pool.
            base_url: Override of the API root, mainly for tests.
        """
        self.api_key = api_key
        self.max_workers = max_workers
        self.base_url = base_url or self.BASE_URL
        self._session: Optional[aiohttp.ClientSession] = None
        self._rate_limiter = RateLimitTracker()

    @property
    def rate_limit(self) -> RateLimitTracker:
        return self._rate_limiter

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_workers * 2,
                limit_per_host=self.max_workers,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={
                    "Authorization": self.api_key,
                    "User-Agent": "pexels-cli/1.0",
                },
                timeout=aiohttp.ClientTimeout(total=30),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "PexelsAPIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def api_call(self, endpoint: str, **params: Any) -> Dict[str, Any]:
        """
        Makes a single GET request; no retries.

        Raises:
            AuthenticationError: HTTP 401.
            VideoNotFoundError: HTTP 404.
            RateLimitExceededError: HTTP 429, or the known quota is exhausted.
            ProviderAPIError: Any other non-success status.
            ProviderUnavailableError: The API could not be reached.
        """
        if not self.api_key:
            raise AuthenticationError("INVALID_API_KEY: Pexels API key is not set")
        self._rate_limiter.check_quota()
        await self._initialize_session()
        await self._rate_limiter.acquire()

        start_time = time.monotonic()
        try:
            async with self._session.get(self.base_url + endpoint, params=params) as r:
                duration_ms = (time.monotonic() - start_time) * 1000
                self._rate_limiter.update_from_headers(r.headers)
                log.debug(
                    f"GET {endpoint} -> {r.status} in {duration_ms:.0f}ms "
                    f"(quota remaining: {self._rate_limiter.remaining})"
                )

                if r.status == 401:
                    raise AuthenticationError(
                        "INVALID_API_KEY: Invalid or missing Pexels API key"
                    )
                if r.status == 404:
                    raise VideoNotFoundError("VIDEO_NOT_FOUND: Requested video not found")
                if r.status == 429:
                    await self._rate_limiter.on_429()
                    raise RateLimitExceededError(
                        "RATE_LIMIT_EXCEEDED: Pexels API rate limit exceeded"
                    )
                if r.status >= 400:
                    raise ProviderAPIError(f"API_ERROR: {r.status} {r.reason}")

                return await r.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug(f"API call to {endpoint} failed: {e}")
            raise ProviderUnavailableError(
                f"NETWORK_ERROR: Failed to connect to Pexels API ({e})"
            ) from e

    def _rate_limit_info(self) -> RateLimitInfo:
        return RateLimitInfo(
            remaining=self._rate_limiter.remaining,
            reset_in=self._rate_limiter.reset_in(),
        )

    async def search_videos(self, params: SearchParams) -> SearchPage:
        """Searches the video catalog and returns one page of results."""
        log.info(f"Searching videos with query: {params.query}")
        data = await self.api_call("videos/search", **params.to_query())
        try:
            page = SearchPage(
                total_results=data.get("total_results", 0),
                page=data.get("page", params.page),
                per_page=data.get("per_page", params.per_page),
                videos=data.get("videos", []),
                rate_limit=self._rate_limit_info(),
            )
        except ValidationError as e:
            raise ProviderAPIError(f"API_ERROR: Unexpected search response: {e}") from e
        log.info(f"Found {page.total_results} videos")
        return page

    async def get_video(self, video_id: int) -> Video:
        """Fetches full details, including all renditions, for one video."""
        log.info(f"Getting video details for ID: {video_id}")
        data = await self.api_call(f"videos/videos/{video_id}")
        try:
            return Video.model_validate(data)
        except ValidationError as e:
            raise ProviderAPIError(f"API_ERROR: Unexpected video response: {e}") from e
