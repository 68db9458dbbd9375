"""
Handles the low-level streaming of video files over HTTP to local disk.
"""

import asyncio
import logging
import os
from pathlib import Path

import aiofiles
import aiofiles.os
import aiohttp

from pexels_cli.exceptions import TransferFailedError

log = logging.getLogger(__name__)

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(max_workers: int = 3) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for downloads.

    This function ensures that only one connection pool is created for the
    lifetime of the application run.

    Args:
        max_workers: Maximum concurrent downloads (should match the batch limit).
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_workers * 2,
            limit_per_host=max_workers,
            ttl_dns_cache=600,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        _connection_pool = aiohttp.ClientSession(
            connector=connector,
            headers={"User-Agent": "pexels-cli/1.0"},
        )
        log.debug(f"Created download pool with limit_per_host={max_workers}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            log.debug("Shared downloader connection pool closed.")
        _connection_pool = None


class Downloader:
    """Streams a single URL to a file. One attempt per call, no retries."""

    CHUNK_SIZE = 262144  # 256 KB

    def __init__(self, timeout: float = 60.0, max_workers: int = 3):
        self.timeout = timeout
        self.max_workers = max_workers

    async def download_file(self, url: str, destination_path: Path) -> None:
        """
        Streams `url` into `destination_path`.

        The body is written to a ``.part`` sibling, flushed and fsynced, then
        renamed into place, so the destination only ever holds a complete file.

        Raises:
            TransferFailedError: On HTTP errors, timeouts, or local write errors.
        """
        destination_path = Path(destination_path)
        temp_path = destination_path.with_name(f"{destination_path.name}.part")
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            session = await get_connection_pool(self.max_workers)
            async with session.get(
                url, allow_redirects=True, timeout=timeout
            ) as response:
                response.raise_for_status()
                async with aiofiles.open(temp_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
                    await f.flush()
                    await asyncio.to_thread(os.fsync, f.fileno())
            await aiofiles.os.replace(temp_path, destination_path)
        except asyncio.TimeoutError as e:
            raise TransferFailedError(
                f"Transfer timed out after {self.timeout:.0f}s"
            ) from e
        except aiohttp.ClientError as e:
            raise TransferFailedError(f"Transfer failed: {e}") from e
        except OSError as e:
            raise TransferFailedError(f"Could not write '{destination_path}': {e}") from e
        finally:
            if await aiofiles.os.path.exists(temp_path):
                try:
                    await aiofiles.os.remove(temp_path)
                except OSError:
                    log.debug(f"Could not remove partial file '{temp_path}'")
