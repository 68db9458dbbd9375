"""
The orchestrator for fetching videos: deduplication against the ledger,
rendition selection, bounded-concurrency batch downloads, and ledger listings.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from rich.markup import escape

from pexels_cli.exceptions import LedgerError, NoSuitableRenditionError
from pexels_cli.media.downloader import Downloader
from pexels_cli.models.media import Rendition, Video
from pexels_cli.models.records import (
    AssetRecord,
    BatchFetchOptions,
    FetchOptions,
    FetchResult,
    FilterCriteria,
    ListOptions,
    PexelsMetadata,
    RenditionMetadata,
)
from pexels_cli.storage.filesystem import FileStore, LocalFileStore
from pexels_cli.storage.ledger import MetadataLedger
from pexels_cli.utils.formatting import estimate_bitrate, extract_codec, format_size
from pexels_cli.utils.path import category_dir, clean_user_filename, generate_filename

log = logging.getLogger(__name__)

QUALITY_ORDER = {
    "hd": ("hd", "sd", "mobile"),
    "sd": ("sd", "hd", "mobile"),
    "mobile": ("mobile", "sd", "hd"),
}


def select_rendition(renditions: list[Rendition], quality: str) -> Rendition:
    """
    Picks the file to download following the quality preference order.

    Falls back to the first listed rendition when none matches.

    Raises:
        NoSuitableRenditionError: The video has no renditions at all.
    """
    for preferred in QUALITY_ORDER.get(quality, QUALITY_ORDER["hd"]):
        for rendition in renditions:
            if rendition.quality == preferred:
                return rendition
    if renditions:
        return renditions[0]
    raise NoSuitableRenditionError(
        f"No suitable video file found for quality: {quality}"
    )


def _sort_key(sort_by: str):
    if sort_by == "size":
        return lambda r: r.file_size
    if sort_by == "duration":
        return lambda r: r.pexels_metadata.duration
    if sort_by == "name":
        return lambda r: r.filename.casefold()

    def by_date(record: AssetRecord) -> datetime:
        try:
            parsed = datetime.fromisoformat(record.download_date.replace("Z", "+00:00"))
        except ValueError:
            return datetime.min.replace(tzinfo=timezone.utc)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    return by_date


class DownloadManager:
    """Orchestrates single and batch downloads into the download directory."""

    def __init__(
        self,
        download_path: Path,
        ledger: MetadataLedger,
        downloader: Optional[Downloader] = None,
        file_store: Optional[FileStore] = None,
        max_concurrent: int = 3,
    ):
        self.download_path = Path(download_path).expanduser().resolve()
        self.ledger = ledger
        self.downloader = downloader or Downloader(max_workers=max_concurrent)
        self.file_store = file_store or LocalFileStore()
        self.semaphore = asyncio.Semaphore(max_concurrent)
        # video id -> transfer in progress; repeat requests share its result
        self._in_flight: dict[int, asyncio.Task[FetchResult]] = {}

    async def _existing_download_result(self, video_id: int) -> FetchResult:
        record = await self.ledger.get(video_id)
        if record is None:
            raise LedgerError(f"Video {video_id} not found in downloads")
        meta = record.pexels_metadata
        return FetchResult(
            video_id=video_id,
            local_path=record.local_path,
            file_size=record.file_size,
            download_time=0,
            metadata=RenditionMetadata(
                width=meta.width,
                height=meta.height,
                duration=meta.duration,
                fps=0,
                codec="unknown",
                bitrate="unknown",
            ),
            status="success",
        )

    async def fetch(
        self, video: Video, options: Optional[FetchOptions] = None
    ) -> FetchResult:
        """
        Downloads one video unless the ledger already holds it.

        A request for an id that is already being downloaded waits for that
        transfer and returns its result instead of starting a second one.
        Never raises: any failure is reported in the returned result.
        """
        pending = self._in_flight.get(video.id)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch_once(video, options))
            self._in_flight[video.id] = pending
            pending.add_done_callback(
                lambda task, video_id=video.id: self._release(video_id, task)
            )
        else:
            log.info(f"Video {video.id} is already being downloaded")
        return await asyncio.shield(pending)

    def _release(self, video_id: int, task: asyncio.Task) -> None:
        if self._in_flight.get(video_id) is task:
            del self._in_flight[video_id]

    async def _fetch_once(
        self, video: Video, options: Optional[FetchOptions]
    ) -> FetchResult:
        options = options or FetchOptions()
        start_time = time.monotonic()
        video_id = video.id

        try:
            if self.ledger.contains(video_id):
                log.info(f"Video {video_id} already downloaded")
                return await self._existing_download_result(video_id)

            rendition = select_rendition(video.video_files, options.quality)

            filename = (
                clean_user_filename(options.filename)
                if options.filename
                else generate_filename(video_id, video.tags)
            )
            target_dir = category_dir(self.download_path, options.category)
            local_path = target_dir / filename
            await self.file_store.ensure_dir(target_dir)

            log.info(
                f"Downloading video {video_id} ([cyan]{rendition.quality or 'unknown'}[/cyan]) "
                f"to [dim]{escape(str(local_path))}[/dim]"
            )
            await self.downloader.download_file(rendition.link, local_path)

            file_size = await self.file_store.size(local_path)
            download_time = time.monotonic() - start_time

            await self.ledger.upsert(
                AssetRecord(
                    id=video_id,
                    filename=filename,
                    local_path=str(local_path),
                    file_size=file_size,
                    download_date=datetime.now(timezone.utc).isoformat(
                        timespec="milliseconds"
                    ),
                    category=options.category,
                    pexels_metadata=PexelsMetadata(
                        width=video.width,
                        height=video.height,
                        duration=video.duration,
                        url=video.url,
                        tags=list(video.tags),
                        user=video.user,
                    ),
                )
            )

            log.info(
                f"[green]✓ Downloaded video {video_id}[/green] "
                f"({format_size(file_size)} in {download_time:.1f}s)"
            )
            return FetchResult(
                video_id=video_id,
                local_path=str(local_path),
                file_size=file_size,
                download_time=download_time,
                metadata=RenditionMetadata(
                    width=rendition.width or 0,
                    height=rendition.height or 0,
                    duration=video.duration,
                    fps=rendition.fps or 0,
                    codec=extract_codec(rendition.file_type),
                    bitrate=estimate_bitrate(file_size, video.duration),
                ),
                status="success",
            )
        except Exception as e:
            log.error(
                f"[red]✗ Error downloading video {video_id}: {escape(str(e))}[/red]",
                exc_info=log.getEffectiveLevel() == logging.DEBUG,
            )
            return FetchResult(
                video_id=video_id,
                download_time=time.monotonic() - start_time,
                status="failed",
                error=str(e),
            )

    def filter_videos(
        self, videos: list[Video], criteria: Optional[FilterCriteria]
    ) -> list[Video]:
        """
        Applies the batch filter block, if any, in order: already downloaded,
        minimum dimensions, preferred frame rate, excluded IDs.
        """
        if criteria is None:
            return list(videos)

        filtered = [v for v in videos if not self.ledger.contains(v.id)]
        if criteria.min_width:
            filtered = [v for v in filtered if v.width >= criteria.min_width]
        if criteria.min_height:
            filtered = [v for v in filtered if v.height >= criteria.min_height]
        if criteria.preferred_fps:
            filtered = [
                v
                for v in filtered
                if any(f.fps == criteria.preferred_fps for f in v.video_files)
            ]
        if criteria.exclude_ids:
            excluded = set(criteria.exclude_ids)
            filtered = [v for v in filtered if v.id not in excluded]
        return filtered

    async def _fetch_with_permit(
        self, video: Video, options: FetchOptions
    ) -> FetchResult:
        async with self.semaphore:
            return await self.fetch(video, options)

    async def batch_fetch(
        self, videos: list[Video], options: Optional[BatchFetchOptions] = None
    ) -> list[FetchResult]:
        """
        Downloads up to ``max_videos`` of the candidates, at most N at a time.

        Results keep the order of the truncated candidate list; one failed
        download never cancels the others.
        """
        options = options or BatchFetchOptions()
        to_download = self.filter_videos(videos, options.filter_criteria)[
            : options.max_videos
        ]
        log.info(f"Starting batch download of {len(to_download)} videos")

        fetch_options = FetchOptions(quality=options.quality, category=options.category)
        results = await asyncio.gather(
            *(self._fetch_with_permit(video, fetch_options) for video in to_download)
        )

        success_count = sum(1 for r in results if r.status == "success")
        log.info(
            f"Batch download completed: {success_count}/{len(results)} successful"
        )
        return list(results)

    async def list_downloaded(
        self, options: Optional[ListOptions] = None
    ) -> list[AssetRecord]:
        """Reads the ledger, filtered by category, sorted and truncated."""
        options = options or ListOptions()
        try:
            records = await self.ledger.read_all()
        except LedgerError as e:
            log.error(f"[red]Error listing downloaded videos: {e}[/red]")
            return []

        if options.category:
            records = [r for r in records if r.category == options.category]

        descending = options.sort_by != "name"
        records.sort(key=_sort_key(options.sort_by), reverse=descending)
        return records[: options.limit]
