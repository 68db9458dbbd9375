import asyncio
from pathlib import Path

import pytest

from pexels_cli.exceptions import TransferFailedError
from pexels_cli.models.media import Rendition, Uploader, Video
from pexels_cli.models.records import AssetRecord, PexelsMetadata

RENDITION_SIZES = {"hd": (1920, 1080), "sd": (960, 540), "mobile": (640, 360)}


def make_video(
    video_id: int,
    tags: list[str] | None = None,
    qualities: tuple[str, ...] = ("hd", "sd", "mobile"),
    width: int = 1920,
    height: int = 1080,
    duration: float = 10,
    fps: float = 25,
) -> Video:
    return Video(
        id=video_id,
        width=width,
        height=height,
        duration=duration,
        url=f"https://www.pexels.com/video/{video_id}/",
        user=Uploader(id=7, name="Jane Doe", url="https://www.pexels.com/@jane"),
        video_files=[
            Rendition(
                id=video_id * 10 + i,
                quality=quality,
                file_type="video/mp4",
                width=RENDITION_SIZES.get(quality, (0, 0))[0],
                height=RENDITION_SIZES.get(quality, (0, 0))[1],
                fps=fps,
                link=f"https://videos.example/{video_id}/{quality}.mp4",
            )
            for i, quality in enumerate(qualities)
        ],
        tags=tags if tags is not None else ["ocean", "waves"],
    )


def make_record(
    video_id: int,
    root: Path,
    tags: list[str] | None = None,
    duration: float = 10,
    category: str | None = None,
    file_size: int = 1000,
    download_date: str = "2024-01-01T00:00:00.000+00:00",
    filename: str | None = None,
) -> AssetRecord:
    filename = filename or f"video_{video_id}.mp4"
    directory = Path(root) / category if category else Path(root)
    return AssetRecord(
        id=video_id,
        filename=filename,
        local_path=str(directory / filename),
        file_size=file_size,
        download_date=download_date,
        category=category,
        pexels_metadata=PexelsMetadata(
            width=1920,
            height=1080,
            duration=duration,
            url=f"https://www.pexels.com/video/{video_id}/",
            tags=tags or [],
        ),
    )


class FakeDownloader:
    """Writes a fixed payload instead of hitting the network; records concurrency."""

    def __init__(self, payload: bytes = b"\x00" * 2500, delay: float = 0.0):
        self.payload = payload
        self.delay = delay
        self.calls: list[str] = []
        self.failing_urls: set[str] = set()
        self.active = 0
        self.max_active = 0

    async def download_file(self, url: str, destination_path: Path) -> None:
        self.calls.append(url)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if url in self.failing_urls:
                raise TransferFailedError("Transfer failed: 503 Service Unavailable")
            Path(destination_path).write_bytes(self.payload)
        finally:
            self.active -= 1


class FakeFileStore:
    """In-memory FileStore: paths map to sizes, nothing touches the disk."""

    def __init__(self, files: dict[Path, int] | None = None):
        self.files = {Path(p): size for p, size in (files or {}).items()}
        self.dirs: set[Path] = set()
        self.moves: list[tuple[Path, Path]] = []
        self.failing_sources: set[Path] = set()

    async def ensure_dir(self, directory: Path) -> None:
        self.dirs.add(Path(directory))

    async def exists(self, path: Path) -> bool:
        return Path(path) in self.files

    async def size(self, path: Path) -> int:
        try:
            return self.files[Path(path)]
        except KeyError:
            raise FileNotFoundError(path) from None

    async def move(self, source: Path, destination: Path) -> None:
        source, destination = Path(source), Path(destination)
        if source in self.failing_sources:
            raise PermissionError(f"Permission denied: '{source}'")
        if destination in self.files:
            raise FileExistsError(f"Destination already exists: {destination}")
        self.files[destination] = self.files.pop(source, 0)
        self.moves.append((source, destination))


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def file_store() -> FakeFileStore:
    return FakeFileStore()
