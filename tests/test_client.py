import asyncio
import time

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from pexels_cli.api.client import PexelsAPIClient
from pexels_cli.api.rate_limiter import RateLimitTracker
from pexels_cli.exceptions import (
    AuthenticationError,
    ProviderAPIError,
    ProviderUnavailableError,
    RateLimitExceededError,
    VideoNotFoundError,
)
from pexels_cli.models.media import SearchParams

VIDEO_PAYLOAD = {
    "id": 857195,
    "width": 1920,
    "height": 1080,
    "duration": 14,
    "url": "https://www.pexels.com/video/857195/",
    "image": "https://images.pexels.com/videos/857195/preview.jpg",
    "user": {"id": 1, "name": "Jane Doe", "url": "https://www.pexels.com/@jane"},
    "video_files": [
        {
            "id": 1,
            "quality": "hd",
            "file_type": "video/mp4",
            "width": 1920,
            "height": 1080,
            "fps": 29.97,
            "link": "https://player.vimeo.com/external/857195.hd.mp4",
            "size": 123456,
        },
        {
            "id": 2,
            "quality": None,
            "file_type": "video/mp4",
            "width": None,
            "height": None,
            "fps": None,
            "link": "https://player.vimeo.com/external/857195.hls",
        },
    ],
    "video_pictures": [],
    "tags": ["ocean", "waves"],
}


async def _serve(routes: list[web.RouteDef]) -> TestServer:
    app = web.Application()
    app.add_routes(routes)
    server = TestServer(app)
    await server.start_server()
    return server


def _run_client(routes, call, api_key="test-key"):
    """Starts a throwaway server, runs ``call(client)`` against it, and cleans up."""

    async def scenario():
        server = await _serve(routes)
        try:
            async with PexelsAPIClient(
                api_key, base_url=str(server.make_url("/"))
            ) as client:
                return await call(client), client
        finally:
            await server.close()

    return asyncio.run(scenario())


def test_search_videos_parses_page_and_quota():
    seen = {}
    reset_at = int(time.time()) + 600

    async def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        seen["query"] = dict(request.query)
        return web.json_response(
            {
                "page": 2,
                "per_page": 5,
                "total_results": 1234,
                "videos": [VIDEO_PAYLOAD],
            },
            headers={
                "X-Ratelimit-Remaining": "150",
                "X-Ratelimit-Reset": str(reset_at),
            },
        )

    page, client = _run_client(
        [web.get("/videos/search", handler)],
        lambda c: c.search_videos(
            SearchParams(query="ocean", orientation="landscape", per_page=5, page=2)
        ),
    )
    assert seen["auth"] == "test-key"
    assert seen["query"] == {
        "query": "ocean",
        "orientation": "landscape",
        "per_page": "5",
        "page": "2",
    }
    assert page.total_results == 1234
    assert page.page == 2
    assert page.videos[0].id == 857195
    assert page.videos[0].video_files[0].fps == 29.97
    assert page.videos[0].video_files[1].quality is None
    assert page.rate_limit.remaining == 150
    assert 590 <= page.rate_limit.reset_in <= 600
    assert client.rate_limit.remaining == 150


def test_get_video_uses_video_endpoint():
    async def handler(request):
        assert request.match_info["video_id"] == "857195"
        return web.json_response(VIDEO_PAYLOAD)

    video, _ = _run_client(
        [web.get("/videos/videos/{video_id}", handler)],
        lambda c: c.get_video(857195),
    )
    assert video.tags == ["ocean", "waves"]
    assert video.user.name == "Jane Doe"


@pytest.mark.parametrize(
    "status, error",
    [
        (401, AuthenticationError),
        (404, VideoNotFoundError),
        (429, RateLimitExceededError),
        (500, ProviderAPIError),
        (403, ProviderAPIError),
    ],
)
def test_http_errors_are_mapped(status, error):
    async def handler(request):
        return web.json_response({"error": "nope"}, status=status)

    with pytest.raises(error):
        _run_client([web.get("/videos/videos/{video_id}", handler)], lambda c: c.get_video(1))


def test_rate_limited_response_slows_pacing():
    async def handler(request):
        return web.Response(status=429)

    async def call(client):
        with pytest.raises(RateLimitExceededError):
            await client.get_video(1)
        return client.rate_limit._min_interval

    interval, _ = _run_client([web.get("/videos/videos/{video_id}", handler)], call)
    assert interval == pytest.approx(0.5)


def test_unexpected_payload_is_an_api_error():
    async def handler(request):
        return web.json_response({"id": "not-a-number"})

    with pytest.raises(ProviderAPIError):
        _run_client([web.get("/videos/videos/{video_id}", handler)], lambda c: c.get_video(1))


def test_missing_api_key_fails_before_any_request():
    async def scenario():
        async with PexelsAPIClient("", base_url="http://127.0.0.1:9/") as client:
            await client.get_video(1)

    with pytest.raises(AuthenticationError):
        asyncio.run(scenario())


def test_unreachable_api_is_provider_unavailable():
    async def scenario():
        server = await _serve([])
        url = str(server.make_url("/"))
        await server.close()
        async with PexelsAPIClient("test-key", base_url=url) as client:
            await client.get_video(1)

    with pytest.raises(ProviderUnavailableError):
        asyncio.run(scenario())


def test_exhausted_quota_is_refused_locally():
    tracker = RateLimitTracker()
    tracker.update_from_headers(
        {"X-Ratelimit-Remaining": "0", "X-Ratelimit-Reset": str(time.time() + 60)}
    )
    with pytest.raises(RateLimitExceededError, match="Reset in"):
        tracker.check_quota()

    tracker.update_from_headers({"X-Ratelimit-Reset": str(time.time() - 1)})
    tracker.check_quota()
    assert tracker.reset_in() == 0


def test_malformed_quota_headers_are_ignored():
    tracker = RateLimitTracker(hourly_quota=200)
    tracker.update_from_headers(
        {"X-Ratelimit-Remaining": "lots", "X-Ratelimit-Reset": "soon"}
    )
    assert tracker.remaining == 200
