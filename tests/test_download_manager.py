import asyncio
import os
from pathlib import Path

import pytest

from conftest import FakeDownloader, make_record, make_video
from pexels_cli.core.download_manager import DownloadManager, select_rendition
from pexels_cli.exceptions import NoSuitableRenditionError
from pexels_cli.models.records import (
    BatchFetchOptions,
    FetchOptions,
    FilterCriteria,
    ListOptions,
)
from pexels_cli.storage.ledger import MetadataLedger
from pexels_cli.utils.formatting import estimate_bitrate, extract_codec
from pexels_cli.utils.path import generate_filename


async def _manager(root, downloader, max_concurrent=3):
    ledger = MetadataLedger(root)
    await ledger.initialize()
    return DownloadManager(
        root, ledger, downloader=downloader, max_concurrent=max_concurrent
    )


@pytest.mark.parametrize(
    "available, requested, expected",
    [
        (("hd", "sd", "mobile"), "hd", "hd"),
        (("sd", "mobile"), "hd", "sd"),
        (("hd", "sd"), "mobile", "sd"),
        (("hd", "mobile"), "sd", "hd"),
        (("mobile",), "hd", "mobile"),
    ],
)
def test_select_rendition_preference(available, requested, expected):
    video = make_video(1, qualities=available)
    assert select_rendition(video.video_files, requested).quality == expected


def test_select_rendition_falls_back_to_first_file():
    video = make_video(1, qualities=("uhd", "4k"))
    assert select_rendition(video.video_files, "hd").quality == "uhd"


def test_select_rendition_without_files():
    with pytest.raises(NoSuitableRenditionError):
        select_rendition([], "hd")


def test_generate_filename():
    assert (
        generate_filename(42, ["Ocean Waves", "Blue!", "sky"], timestamp_ms=1700)
        == "ocean_waves_blue_42_1700.mp4"
    )
    assert generate_filename(42, [], timestamp_ms=1700) == "video_42_1700.mp4"
    assert generate_filename(42, ["!!!"], timestamp_ms=1700) == "video_42_1700.mp4"


def test_codec_and_bitrate():
    assert extract_codec("video/mp4") == "h264"
    assert extract_codec("video/webm") == "vp8"
    assert extract_codec("video/quicktime") == "unknown"
    assert estimate_bitrate(1_000_000, 10) == "800kbps"
    assert estimate_bitrate(2500, 10) == "2kbps"
    assert estimate_bitrate(1_000_000, 0) == "unknown"


def test_fetch_success_records_asset(tmp_path, downloader):
    async def scenario():
        manager = await _manager(tmp_path, downloader)
        result = await manager.fetch(make_video(7), FetchOptions(quality="sd"))
        return result, await manager.ledger.read_all()

    result, records = asyncio.run(scenario())
    assert result.status == "success"
    assert result.error is None
    assert result.file_size == 2500
    assert result.metadata.width == 960
    assert result.metadata.fps == 25
    assert result.metadata.codec == "h264"
    assert result.metadata.bitrate == "2kbps"
    assert downloader.calls == ["https://videos.example/7/sd.mp4"]

    assert len(records) == 1
    record = records[0]
    assert record.id == 7
    assert record.filename.startswith("ocean_waves_7_")
    assert record.local_path == result.local_path
    assert record.pexels_metadata.tags == ["ocean", "waves"]
    assert record.pexels_metadata.user.name == "Jane Doe"
    assert (tmp_path / record.filename).read_bytes() == downloader.payload


def test_fetch_is_idempotent(tmp_path, downloader):
    async def scenario():
        manager = await _manager(tmp_path, downloader)
        video = make_video(1)
        first = await manager.fetch(video)
        second = await manager.fetch(video)
        return first, second, await manager.ledger.read_all()

    first, second, records = asyncio.run(scenario())
    assert first.status == second.status == "success"
    assert second.local_path == first.local_path
    assert second.file_size == first.file_size
    assert second.download_time == 0
    assert second.metadata.fps == 0
    assert second.metadata.codec == second.metadata.bitrate == "unknown"
    assert len(downloader.calls) == 1
    assert len(records) == 1


def test_fetch_into_category_with_custom_filename(tmp_path, downloader):
    async def scenario():
        manager = await _manager(tmp_path, downloader)
        return await manager.fetch(
            make_video(3), FetchOptions(filename="my clip", category="nature")
        )

    result = asyncio.run(scenario())
    assert result.status == "success"
    assert result.local_path == str(tmp_path / "nature" / "my clip.mp4")
    assert (tmp_path / "nature" / "my clip.mp4").is_file()


def test_fetch_without_renditions_fails(tmp_path, downloader):
    async def scenario():
        manager = await _manager(tmp_path, downloader)
        return await manager.fetch(make_video(5, qualities=())), manager

    result, manager = asyncio.run(scenario())
    assert result.status == "failed"
    assert "No suitable video file found" in result.error
    assert result.local_path == ""
    assert result.metadata.width == 0
    assert downloader.calls == []
    assert not manager.ledger.contains(5)


def test_failed_transfer_does_not_cancel_siblings(tmp_path):
    downloader = FakeDownloader(delay=0.01)
    downloader.failing_urls.add("https://videos.example/2/hd.mp4")

    async def scenario():
        manager = await _manager(tmp_path, downloader)
        videos = [make_video(i) for i in (1, 2, 3)]
        return await manager.batch_fetch(videos), manager

    results, manager = asyncio.run(scenario())
    assert [r.video_id for r in results] == [1, 2, 3]
    assert [r.status for r in results] == ["success", "failed", "success"]
    assert "503" in results[1].error
    assert not manager.ledger.contains(2)
    assert not list(tmp_path.glob("*_2_*.mp4"))


def test_batch_concurrency_is_bounded(tmp_path):
    downloader = FakeDownloader(delay=0.05)

    async def scenario():
        manager = await _manager(tmp_path, downloader, max_concurrent=2)
        videos = [make_video(i) for i in range(1, 6)]
        return await manager.batch_fetch(videos, BatchFetchOptions(max_videos=5))

    results = asyncio.run(scenario())
    assert len(results) == 5
    assert all(r.status == "success" for r in results)
    assert downloader.max_active == 2


def test_batch_with_repeated_video_downloads_once(tmp_path):
    downloader = FakeDownloader(delay=0.01)

    async def scenario():
        manager = await _manager(tmp_path, downloader)
        video = make_video(1)
        results = await manager.batch_fetch([video, video, make_video(2)])
        return results, await manager.ledger.read_all(), manager

    results, records, manager = asyncio.run(scenario())
    assert [r.video_id for r in results] == [1, 1, 2]
    assert [r.status for r in results] == ["success"] * 3
    assert results[0].local_path == results[1].local_path
    assert len(downloader.calls) == 2
    assert sorted(r.id for r in records) == [1, 2]
    assert len(list(tmp_path.glob("*_1_*.mp4"))) == 1
    assert manager._in_flight == {}


def test_concurrent_fetches_of_one_video_share_a_transfer(tmp_path):
    downloader = FakeDownloader(delay=0.01)

    async def scenario():
        manager = await _manager(tmp_path, downloader)
        video = make_video(4)
        return await asyncio.gather(manager.fetch(video), manager.fetch(video))

    first, second = asyncio.run(scenario())
    assert first.status == second.status == "success"
    assert first.local_path == second.local_path
    assert downloader.calls == ["https://videos.example/4/hd.mp4"]


def test_relative_download_path_gives_absolute_local_path(
    tmp_path, downloader, monkeypatch
):
    monkeypatch.chdir(tmp_path)

    async def scenario():
        ledger = MetadataLedger(Path("downloads"))
        await ledger.initialize()
        manager = DownloadManager(Path("./downloads"), ledger, downloader=downloader)
        result = await manager.fetch(make_video(3))
        return result, await ledger.read_all()

    result, records = asyncio.run(scenario())
    assert result.status == "success"
    assert os.path.isabs(result.local_path)
    assert Path(result.local_path).parent == tmp_path / "downloads"
    assert records[0].local_path == result.local_path


def test_batch_with_filter_skips_downloaded(tmp_path, downloader):
    async def scenario():
        manager = await _manager(tmp_path, downloader)
        await manager.fetch(make_video(1))
        videos = [make_video(i) for i in (1, 2, 3)]
        results = await manager.batch_fetch(
            videos, BatchFetchOptions(filter_criteria=FilterCriteria())
        )
        return results

    results = asyncio.run(scenario())
    assert [r.video_id for r in results] == [2, 3]
    assert len(downloader.calls) == 3


def test_batch_end_to_end_with_one_known_video(tmp_path, downloader):
    async def scenario():
        manager = await _manager(tmp_path, downloader)
        await manager.fetch(make_video(1))
        before = len(await manager.ledger.read_all())
        calls_before = len(downloader.calls)

        videos = [make_video(i) for i in (1, 2, 3)]
        results = await manager.batch_fetch(videos, BatchFetchOptions(max_videos=2))
        after = len(await manager.ledger.read_all())
        return results, before, after, len(downloader.calls) - calls_before

    results, before, after, new_transfers = asyncio.run(scenario())
    assert len(results) == 2
    assert all(r.status == "success" for r in results)
    assert [r.video_id for r in results] == [1, 2]
    assert results[0].download_time == 0
    assert new_transfers == 1
    assert after == before + 1


def test_batch_filters(tmp_path, downloader):
    videos = [
        make_video(1, width=1280, height=720),
        make_video(2, width=3840, height=2160, fps=30),
        make_video(3, width=3840, height=2160, fps=25),
        make_video(4, width=1920, height=1080, fps=30),
        make_video(5, width=3840, height=2160, fps=30),
    ]

    async def scenario():
        manager = await _manager(tmp_path, downloader)
        return manager.filter_videos(
            videos,
            FilterCriteria(
                min_width=1920, min_height=1080, preferred_fps=30, exclude_ids=[5]
            ),
        )

    filtered = asyncio.run(scenario())
    assert [v.id for v in filtered] == [2, 4]


def test_batch_options_category(tmp_path, downloader):
    async def scenario():
        manager = await _manager(tmp_path, downloader)
        return await manager.batch_fetch(
            [make_video(1)], BatchFetchOptions(category="b-roll", quality="mobile")
        )

    (result,) = asyncio.run(scenario())
    assert (tmp_path / "b-roll").is_dir()
    assert result.local_path.startswith(str(tmp_path / "b-roll"))
    assert downloader.calls == ["https://videos.example/1/mobile.mp4"]


def test_list_downloaded_sorting_and_filters(tmp_path, downloader):
    records = [
        make_record(
            1, tmp_path, file_size=300, duration=5, filename="b.mp4",
            download_date="2024-01-02T00:00:00.000+00:00",
        ),
        make_record(
            2, tmp_path, file_size=100, duration=50, filename="a.mp4",
            download_date="2024-01-03T00:00:00.000+00:00", category="calm",
        ),
        make_record(
            3, tmp_path, file_size=200, duration=20, filename="C.mp4",
            download_date="2024-01-01T00:00:00.000+00:00", category="calm",
        ),
    ]

    async def scenario():
        manager = await _manager(tmp_path, downloader)
        for record in records:
            await manager.ledger.upsert(record)
        return {
            "date": await manager.list_downloaded(),
            "size": await manager.list_downloaded(ListOptions(sort_by="size")),
            "duration": await manager.list_downloaded(ListOptions(sort_by="duration")),
            "name": await manager.list_downloaded(ListOptions(sort_by="name")),
            "calm": await manager.list_downloaded(ListOptions(category="calm")),
            "limited": await manager.list_downloaded(ListOptions(limit=1)),
        }

    listed = asyncio.run(scenario())
    ids = {key: [r.id for r in value] for key, value in listed.items()}
    assert ids["date"] == [2, 1, 3]
    assert ids["size"] == [1, 3, 2]
    assert ids["duration"] == [2, 3, 1]
    assert ids["name"] == [2, 1, 3]
    assert ids["calm"] == [2, 3]
    assert ids["limited"] == [2]


def test_list_downloaded_with_corrupt_ledger(tmp_path, downloader):
    (tmp_path / "metadata.json").write_text("[{]", encoding="utf-8")

    async def scenario():
        manager = await _manager(tmp_path, downloader)
        return await manager.list_downloaded()

    assert asyncio.run(scenario()) == []


def test_list_downloaded_with_undecodable_ledger(tmp_path, downloader):
    (tmp_path / "metadata.json").write_bytes(b"[\xff\xfe]")

    async def scenario():
        manager = await _manager(tmp_path, downloader)
        return await manager.list_downloaded()

    assert asyncio.run(scenario()) == []
