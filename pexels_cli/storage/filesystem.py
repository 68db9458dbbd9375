"""
The narrow filesystem interface used by the download and organization layers.

Blocking calls run in worker threads so they never stall the event loop.
"""

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Protocol

from pexels_cli.utils.path import create_dir

log = logging.getLogger(__name__)


class FileStore(Protocol):
    """Directory creation, stat and move primitives."""

    async def ensure_dir(self, directory: Path) -> None: ...

    async def exists(self, path: Path) -> bool: ...

    async def size(self, path: Path) -> int: ...

    async def move(self, source: Path, destination: Path) -> None: ...


class LocalFileStore:
    """FileStore backed by the local disk."""

    async def ensure_dir(self, directory: Path) -> None:
        await asyncio.to_thread(create_dir, directory)

    async def exists(self, path: Path) -> bool:
        return await asyncio.to_thread(os.path.isfile, path)

    async def size(self, path: Path) -> int:
        stat = await asyncio.to_thread(os.stat, path)
        return stat.st_size

    async def move(self, source: Path, destination: Path) -> None:
        """Moves a file, refusing to overwrite an existing destination."""
        if await self.exists(destination):
            raise FileExistsError(f"Destination already exists: {destination}")
        await asyncio.to_thread(shutil.move, str(source), str(destination))
        log.debug(f"Moved '{source}' to '{destination}'")
