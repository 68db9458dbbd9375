import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from pexels_cli.exceptions import TransferFailedError
from pexels_cli.media.downloader import Downloader, close_connection_pool

PAYLOAD = bytes(range(256)) * 4096  # 1 MiB, several chunks


async def _video(request):
    return web.Response(body=PAYLOAD, content_type="video/mp4")


async def _redirect(request):
    raise web.HTTPFound("/video.mp4")


async def _missing(request):
    return web.Response(status=404)


async def _slow(request):
    await asyncio.sleep(0.5)
    return web.Response(body=b"late")


def _download(path: str, destination, timeout: float = 60.0):
    async def scenario():
        app = web.Application()
        app.add_routes(
            [
                web.get("/video.mp4", _video),
                web.get("/redirect", _redirect),
                web.get("/missing.mp4", _missing),
                web.get("/slow.mp4", _slow),
            ]
        )
        server = TestServer(app)
        await server.start_server()
        try:
            await Downloader(timeout=timeout).download_file(
                str(server.make_url(path)), destination
            )
        finally:
            await close_connection_pool()
            await server.close()

    asyncio.run(scenario())


def test_download_streams_complete_file(tmp_path):
    destination = tmp_path / "clip.mp4"
    _download("/video.mp4", destination)
    assert destination.read_bytes() == PAYLOAD
    assert list(tmp_path.iterdir()) == [destination]


def test_download_follows_redirects(tmp_path):
    destination = tmp_path / "clip.mp4"
    _download("/redirect", destination)
    assert destination.stat().st_size == len(PAYLOAD)


def test_http_error_leaves_nothing_behind(tmp_path):
    destination = tmp_path / "clip.mp4"
    with pytest.raises(TransferFailedError, match="404"):
        _download("/missing.mp4", destination)
    assert list(tmp_path.iterdir()) == []


def test_timeout_is_a_transfer_failure(tmp_path):
    destination = tmp_path / "clip.mp4"
    with pytest.raises(TransferFailedError):
        _download("/slow.mp4", destination, timeout=0.1)
    assert list(tmp_path.iterdir()) == []


def test_unwritable_destination(tmp_path):
    destination = tmp_path / "no-such-dir" / "clip.mp4"
    with pytest.raises(TransferFailedError, match="Could not write"):
        _download("/video.mp4", destination)
