"""
Tracks the Pexels request quota reported in response headers and paces calls to
avoid 429 "Too Many Requests" errors from the API.
"""

import asyncio
import logging
import time
from collections.abc import Mapping

from pexels_cli.exceptions import RateLimitExceededError

log = logging.getLogger(__name__)

DEFAULT_HOURLY_QUOTA = 200


class RateLimitTracker:
    """
    Keeps the remaining-quota snapshot from ``X-Ratelimit-*`` headers and
    spaces out calls, halving the pace whenever the API answers 429.
    """

    def __init__(
        self,
        calls_per_second: float = 4.0,
        hourly_quota: int = DEFAULT_HOURLY_QUOTA,
    ):
        self.remaining = hourly_quota
        self.reset_time = time.time() + 3600
        self._rate = calls_per_second
        self._min_interval = 1.0 / self._rate
        self._last_call_time = 0.0
        self._lock = asyncio.Lock()

    def check_quota(self) -> None:
        """Refuses to call the API while the quota is exhausted and not yet reset."""
        now = time.time()
        if self.remaining <= 0 and now < self.reset_time:
            wait_time = int(self.reset_time - now + 0.999)
            raise RateLimitExceededError(
                f"Rate limit exceeded. Reset in {wait_time} seconds"
            )

    def update_from_headers(self, headers: Mapping[str, str]) -> None:
        if (remaining := headers.get("X-Ratelimit-Remaining")) is not None:
            try:
                self.remaining = int(remaining)
            except ValueError:
                log.debug(f"Ignoring malformed X-Ratelimit-Remaining: {remaining!r}")
        if (reset := headers.get("X-Ratelimit-Reset")) is not None:
            try:
                self.reset_time = float(reset)
            except ValueError:
                log.debug(f"Ignoring malformed X-Ratelimit-Reset: {reset!r}")

    def reset_in(self) -> int:
        """Whole seconds until the quota resets (never negative)."""
        return max(0, int(self.reset_time - time.time() + 0.999))

    async def on_429(self) -> None:
        """Halves the current request rate after the API reports throttling."""
        async with self._lock:
            self._rate = max(0.5, self._rate * 0.5)
            self._min_interval = 1.0 / self._rate
            log.warning(
                f"[yellow]Rate limit hit. New rate: {self._rate:.1f} calls/s[/yellow]"
            )

    async def acquire(self) -> None:
        """
        Waits if necessary to respect the current pacing before allowing a call.
        """
        async with self._lock:
            loop = asyncio.get_running_loop()
            time_since_last = loop.time() - self._last_call_time
            if time_since_last < self._min_interval:
                await asyncio.sleep(self._min_interval - time_since_last)
            self._last_call_time = loop.time()
