"""
Manages the JSON metadata ledger that records every downloaded video, used both
as the download history and to prevent redownloading.
"""

import asyncio
import json
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiofiles
import aiofiles.os
from pydantic import TypeAdapter, ValidationError

from pexels_cli.exceptions import LedgerUnreadableError, LedgerUnwritableError
from pexels_cli.models.records import AssetRecord
from pexels_cli.utils.path import create_dir

log = logging.getLogger(__name__)

LEDGER_FILENAME = "metadata.json"

_records_adapter = TypeAdapter(list[AssetRecord])


def dump_records(records: list[AssetRecord]) -> str:
    """Serializes records to the ledger's on-disk text form."""
    payload = [record.model_dump(mode="json") for record in records]
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def load_records(text: str) -> list[AssetRecord]:
    """Parses the ledger's on-disk text form into records."""
    try:
        return _records_adapter.validate_json(text)
    except ValidationError as e:
        raise LedgerUnreadableError(f"Ledger content is invalid: {e}") from e


class MetadataLedger:
    """
    The durable list of downloaded videos, stored as a single JSON array.

    Every read-modify-write sequence runs under one asyncio lock so that
    downloads completing at the same moment cannot lose each other's updates.
    Writes go to a temporary file that is atomically renamed into place.
    """

    def __init__(self, download_path: Path, filename: str = LEDGER_FILENAME):
        self.download_path = Path(download_path).expanduser().resolve()
        self.path = self.download_path / filename
        self._lock = asyncio.Lock()
        self._known_ids: set[int] = set()

    async def initialize(self) -> None:
        """Ensures the download directory exists and indexes known video IDs."""
        await asyncio.to_thread(create_dir, self.download_path)
        try:
            records = await self.read_all()
        except LedgerUnreadableError as e:
            log.error(f"[red]Error loading metadata ledger: {e}[/red]")
            return
        if records:
            log.info(f"Loaded metadata for {len(self._known_ids)} videos")

    def exists(self) -> bool:
        return self.path.is_file()

    def contains(self, video_id: int) -> bool:
        """Reports whether the video has already been downloaded."""
        return video_id in self._known_ids

    async def _read_unlocked(self) -> list[AssetRecord]:
        if not await aiofiles.os.path.isfile(self.path):
            return []
        try:
            async with aiofiles.open(self.path, encoding="utf-8") as f:
                text = await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise LedgerUnreadableError(f"Cannot read '{self.path}': {e}") from e
        records = load_records(text)
        self._known_ids = {record.id for record in records}
        return records

    async def _write_unlocked(self, records: list[AssetRecord]) -> None:
        temp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(dump_records(records))
                await f.flush()
                await asyncio.to_thread(os.fsync, f.fileno())
            await aiofiles.os.replace(temp_path, self.path)
        except OSError as e:
            raise LedgerUnwritableError(f"Cannot write '{self.path}': {e}") from e
        self._known_ids = {record.id for record in records}

    async def read_all(self) -> list[AssetRecord]:
        """Returns every record; an absent ledger reads as empty."""
        async with self._lock:
            return await self._read_unlocked()

    async def get(self, video_id: int) -> AssetRecord | None:
        for record in await self.read_all():
            if record.id == video_id:
                return record
        return None

    async def upsert(self, record: AssetRecord) -> None:
        """Adds a record, replacing any existing record with the same ID."""
        async with self._lock:
            records = [r for r in await self._read_unlocked() if r.id != record.id]
            records.append(record)
            await self._write_unlocked(records)
        log.info(f"Saved metadata for video {record.id}")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[list[AssetRecord]]:
        """
        Holds the ledger lock for a whole read-modify-write pass.

        Yields the current records; the (possibly mutated) list is written back
        exactly once when the block exits without an exception.
        """
        async with self._lock:
            records = await self._read_unlocked()
            yield records
            await self._write_unlocked(records)
