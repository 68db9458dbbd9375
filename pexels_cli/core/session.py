"""
The process-wide context that owns every component and exposes the operations
called by the front end.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from pexels_cli.api.client import PexelsAPIClient
from pexels_cli.exceptions import LedgerError
from pexels_cli.media.downloader import Downloader, close_connection_pool
from pexels_cli.models.config import AppConfig
from pexels_cli.models.media import SearchPage, SearchParams, Video
from pexels_cli.models.records import (
    AssetRecord,
    BatchFetchOptions,
    FetchOptions,
    FetchResult,
    ListOptions,
    OrganizeOptions,
    OrganizeResult,
)
from pexels_cli.storage.cache import TTLCache
from pexels_cli.storage.filesystem import LocalFileStore
from pexels_cli.storage.ledger import MetadataLedger
from pexels_cli.storage.usage import Period, UsageTracker

from .download_manager import DownloadManager
from .organizer import Organizer

log = logging.getLogger(__name__)

_MISSING = object()


class MediaSession:
    """
    Builds the cache, API client, ledger, download manager, organizer and
    usage tracker from one AppConfig and manages their lifecycles.

    Use as ``async with MediaSession(config) as session: ...``.
    """

    def __init__(
        self,
        config: AppConfig,
        api_client: Optional[PexelsAPIClient] = None,
        downloader: Optional[Downloader] = None,
    ):
        self.config = config
        self.download_path = Path(config.download_path)
        self.cache = TTLCache(
            default_ttl=config.cache_duration,
            sweep_interval=config.cache_sweep_interval,
        )
        self.api_client = api_client or PexelsAPIClient(
            config.api_key, max_workers=config.max_concurrent_downloads
        )
        self.ledger = MetadataLedger(self.download_path)
        file_store = LocalFileStore()
        self.download_manager = DownloadManager(
            self.download_path,
            self.ledger,
            downloader=downloader
            or Downloader(
                timeout=config.transfer_timeout,
                max_workers=config.max_concurrent_downloads,
            ),
            file_store=file_store,
            max_concurrent=config.max_concurrent_downloads,
        )
        self.organizer = Organizer(self.download_path, self.ledger, file_store)
        self.usage = (
            UsageTracker(self.download_path) if config.track_usage else None
        )

    async def __aenter__(self) -> "MediaSession":
        await self.ledger.initialize()
        await self.cache.start_background_cleanup()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.cache.stop_background_cleanup()
        await self.api_client.close()
        await close_connection_pool()

    async def search_videos(self, params: SearchParams) -> SearchPage:
        """Searches Pexels, answering repeated identical queries from the cache."""
        cache_key = f"search_{json.dumps(params.model_dump(), sort_keys=True)}"
        if (cached := self.cache.get(cache_key, _MISSING)) is not _MISSING:
            log.info("Returning cached search results")
            return cached

        page = await self.api_client.search_videos(params)
        self.cache.set(cache_key, page)
        if self.usage:
            self.usage.record_api_call("search_videos")
        return page

    async def get_video_details(self, video_id: int) -> Video:
        cache_key = f"video_{video_id}"
        if (cached := self.cache.get(cache_key, _MISSING)) is not _MISSING:
            log.info("Returning cached video details")
            return cached

        video = await self.api_client.get_video(video_id)
        self.cache.set(cache_key, video)
        if self.usage:
            self.usage.record_api_call("get_video_details")
        return video

    async def download_video(
        self, video_id: int, options: Optional[FetchOptions] = None
    ) -> FetchResult:
        """
        Downloads a video by ID.

        Provider errors while looking the video up propagate to the caller;
        download errors are reported in the result.
        """
        if self.download_manager.ledger.contains(video_id):
            video = Video(id=video_id)
        else:
            video = await self.get_video_details(video_id)
        result = await self.download_manager.fetch(video, options)
        if self.usage and result.status == "success":
            self.usage.record_download(result.file_size)
        return result

    async def batch_download(
        self, search_params: SearchParams, options: Optional[BatchFetchOptions] = None
    ) -> list[FetchResult]:
        page = await self.search_videos(search_params)
        results = await self.download_manager.batch_fetch(page.videos, options)
        if self.usage:
            self.usage.record_batch_download(len(results))
        return results

    async def list_downloaded(
        self, options: Optional[ListOptions] = None
    ) -> list[AssetRecord]:
        return await self.download_manager.list_downloaded(options)

    async def organize(self, options: Optional[OrganizeOptions] = None) -> OrganizeResult:
        return await self.organizer.categorize(options)

    async def preview(
        self, options: Optional[OrganizeOptions] = None
    ) -> dict[str, list[AssetRecord]]:
        return await self.organizer.preview(options)

    async def usage_stats(self, period: Period = "hour") -> dict[str, Any]:
        tracker = self.usage or UsageTracker(self.download_path)
        try:
            records = await self.ledger.read_all()
        except LedgerError as e:
            log.warning(f"[yellow]Storage totals unavailable:[/] {e}")
            records = []
        return tracker.get_stats(period, records)
