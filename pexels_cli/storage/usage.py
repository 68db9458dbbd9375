"""
Records API calls and downloads to a JSON usage log and summarizes them per period.
"""

import json
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

from pexels_cli.models.records import AssetRecord

log = logging.getLogger(__name__)

USAGE_FILENAME = "usage.json"
HOURLY_REQUEST_LIMIT = 200
RETENTION_SECONDS = 30 * 86400

Period = Literal["hour", "day", "month"]
PERIOD_SECONDS = {"hour": 3600, "day": 86400, "month": 30 * 86400}


def _iso(ts_ms: float) -> str:
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).isoformat()


class UsageTracker:
    """Appends usage events to ``usage.json`` in the download directory."""

    def __init__(self, download_path: Path, clock: Callable[[], float] = time.time):
        self.usage_file = Path(download_path) / USAGE_FILENAME
        self._clock = clock
        self._events: list[dict[str, Any]] = self._load()

    def _load(self) -> list[dict[str, Any]]:
        if not self.usage_file.is_file():
            return []
        try:
            with open(self.usage_file, encoding="utf-8") as f:
                events = json.load(f)
            log.debug(f"Loaded {len(events)} usage records")
            return events if isinstance(events, list) else []
        except (OSError, json.JSONDecodeError) as e:
            log.warning(f"[yellow]Could not load usage log:[/] {e}")
            return []

    def _save(self) -> None:
        try:
            self.usage_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.usage_file, "w", encoding="utf-8") as f:
                json.dump(self._events, f, indent=2)
        except OSError as e:
            log.warning(f"[yellow]Could not save usage log:[/] {e}")

    def _record(self, event_type: str, details: dict[str, Any]) -> None:
        self._events.append(
            {
                "timestamp": int(self._clock() * 1000),
                "type": event_type,
                "details": details,
            }
        )
        self._save()

    def record_api_call(self, action: str) -> None:
        self._record("api_call", {"action": action})
        log.debug(f"Recorded API call: {action}")

    def record_download(self, size: int | None = None) -> None:
        self._record("download", {"size": size})

    def record_batch_download(self, count: int) -> None:
        self._record("batch_download", {"count": count})
        log.debug(f"Recorded batch download: {count} files")

    def cleanup(self) -> int:
        """Drops events older than thirty days; returns how many were removed."""
        cutoff = (self._clock() - RETENTION_SECONDS) * 1000
        before = len(self._events)
        self._events = [e for e in self._events if e["timestamp"] > cutoff]
        removed = before - len(self._events)
        if removed:
            log.info(f"Cleaned up {removed} old usage records")
            self._save()
        return removed

    def get_stats(
        self, period: Period = "hour", records: list[AssetRecord] | None = None
    ) -> dict[str, Any]:
        """
        Summarizes usage over the last hour, day or month.

        Args:
            period: Window to count events in.
            records: Current ledger contents, used for the storage totals.
        """
        now_ms = self._clock() * 1000
        period_start = now_ms - PERIOD_SECONDS[period] * 1000
        in_period = [e for e in self._events if e["timestamp"] >= period_start]

        api_calls = [e for e in in_period if e["type"] == "api_call"]
        searches = sum(
            1 for e in api_calls if e["details"].get("action") == "search_videos"
        )
        details = sum(
            1 for e in api_calls if e["details"].get("action") == "get_video_details"
        )
        downloads = sum(1 for e in in_period if e["type"] == "download")
        batch_count = sum(
            e["details"].get("count") or 0
            for e in in_period
            if e["type"] == "batch_download"
        )

        hour_start = now_ms - 3600 * 1000
        hits_per_hour = sum(
            1
            for e in self._events
            if e["type"] == "api_call" and e["timestamp"] >= hour_start
        )

        records = records or []
        total_size = sum(r.file_size for r in records)
        timestamps = [e["timestamp"] for e in self._events] or [now_ms]
        next_hour_ms = -(-now_ms // 3_600_000) * 3_600_000

        return {
            "period": period,
            "api_calls": {
                "search_videos": searches,
                "get_video_details": details,
                "total": len(api_calls),
            },
            "downloads": {
                "individual": downloads,
                "batch": batch_count,
                "total": downloads + batch_count,
            },
            "storage": {
                "total_files": len(records),
                "total_size_bytes": total_size,
                "total_size_mb": round(total_size / (1024 * 1024), 2),
            },
            "rate_limits": {
                "current_remaining": max(0, HOURLY_REQUEST_LIMIT - hits_per_hour),
                "last_reset": _iso(next_hour_ms),
                "hits_per_hour": hits_per_hour,
            },
            "timestamps": {
                "first_call": _iso(min(timestamps)),
                "last_call": _iso(max(timestamps)),
                "period_start": _iso(period_start),
            },
        }
