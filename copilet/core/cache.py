"""
TTL cache for category listings and the guard that keeps at most one
listing request in flight per cache key.
"""

import asyncio
import time
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from ..models import CacheEntry, ContentCategory, ContentEntry, RepoSource
from ..infrastructure.logger import logger


T = TypeVar("T")

DEFAULT_TTL = 60 * 60.0  # 1 hour


def cache_key(repo: RepoSource, category: ContentCategory) -> str:
    return f"{repo.identity}|{category.value}"


####
##      CONTENT CACHE
#####
class ContentCache:
    """
    Listing cache keyed by ``"{repo identity}|{category}"``.

    An entry is served only while ``now - timestamp < ttl``; expired entries
    are dropped on lookup.
    """

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.time):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def now(self) -> float:
        return self._clock()

    def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_valid(self.now(), self.ttl):
            logger.debug(f"Cache entry expired: {key}")
            del self._entries[key]
            return None
        return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def store(
        self,
        repo: RepoSource,
        category: ContentCategory,
        data: List[ContentEntry],
    ) -> CacheEntry:
        entry = CacheEntry(category=category, repo=repo, data=data, timestamp=self.now())
        self.set(cache_key(repo, category), entry)
        return entry

    def invalidate(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def invalidate_by_repo_prefix(self, repo_identity: str) -> int:
        """Drop every category cached for one repository."""

        prefix = f"{repo_identity}|"
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def invalidate_by_key(self, repo_identity: str, category: ContentCategory) -> bool:
        return self.invalidate(f"{repo_identity}|{category.value}")

    def clear(self) -> None:
        self._entries.clear()

    def status(self) -> str:
        """Human readable summary: item count and age of every entry."""

        if not self._entries:
            return "Cache empty"

        now = self.now()
        parts = []
        for key, entry in self._entries.items():
            age_minutes = int(entry.age(now) // 60)
            parts.append(f"{key}: {len(entry.data)} files ({age_minutes}m old)")
        return ", ".join(parts)


####
##      IN-FLIGHT GUARD
#####
class InFlightGuard:
    """
    Collapse concurrent fetches of the same key into one.

    The first caller for a key starts the fetch; callers arriving while it is
    outstanding await the same task and share its result or exception.
    """

    def __init__(self) -> None:
        self._tasks: Dict[str, "asyncio.Task"] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._tasks

    @property
    def keys(self) -> List[str]:
        return list(self._tasks)

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda _t, _key=key: self._release(_key, _t))
        else:
            logger.debug(f"Joining in-flight request for {key}")
        return await asyncio.shield(task)

    def _release(self, key: str, task: "asyncio.Task") -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        # Mark the exception retrieved when every waiter was cancelled
        if not task.cancelled():
            task.exception()


__all__ = ["ContentCache", "InFlightGuard", "cache_key", "DEFAULT_TTL"]
