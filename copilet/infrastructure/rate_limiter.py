"""
Rate limit tracking for the GitHub API.

Every response carries ``x-ratelimit-*`` headers; the tracker keeps the
latest snapshot so callers can report quota and reset time.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional


# Below this many remaining requests the quota is considered exhausted
EXHAUSTION_THRESHOLD = 10


@dataclass
class RateLimitInfo:
    """Snapshot of the GitHub rate limit headers."""

    limit: int = 60
    remaining: int = 60
    used: int = 0
    reset_time: Optional[datetime] = None

    @property
    def is_exhausted(self) -> bool:
        return self.remaining <= EXHAUSTION_THRESHOLD

    @property
    def reset_in_seconds(self) -> float:
        if not self.reset_time:
            return 0.0
        return max(0.0, (self.reset_time - datetime.now()).total_seconds())

    def describe(self) -> str:
        text = f"{self.remaining}/{self.limit} requests remaining"
        if self.reset_time:
            text += f", resets in {int(self.reset_in_seconds // 60)}m"
        return text


class RateLimitTracker:
    """Task-safe holder of the most recent rate limit snapshot."""

    def __init__(self) -> None:
        self.rate_limit_info = RateLimitInfo()
        self._consecutive_limits = 0
        self._lock = asyncio.Lock()

    async def update_rate_limit_info(self, headers: Mapping[str, str]) -> None:
        """Update the snapshot from response headers (case-insensitive keys)."""

        async with self._lock:
            info = self.rate_limit_info
            lowered = {key.lower(): value for key, value in headers.items()}

            if "x-ratelimit-limit" in lowered:
                info.limit = int(lowered["x-ratelimit-limit"])
            if "x-ratelimit-remaining" in lowered:
                info.remaining = int(lowered["x-ratelimit-remaining"])
            if "x-ratelimit-used" in lowered:
                info.used = int(lowered["x-ratelimit-used"])
            if "x-ratelimit-reset" in lowered:
                info.reset_time = datetime.fromtimestamp(int(lowered["x-ratelimit-reset"]))

            if info.is_exhausted:
                self._consecutive_limits += 1
            else:
                self._consecutive_limits = 0

    @property
    def consecutive_limits(self) -> int:
        return self._consecutive_limits


__all__ = ["RateLimitInfo", "RateLimitTracker", "EXHAUSTION_THRESHOLD"]
