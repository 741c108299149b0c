import asyncio

import pytest

from copilet.core.cache import ContentCache, InFlightGuard, cache_key
from copilet.models import ContentCategory, ContentEntry, RepoSource


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def repo():
    return RepoSource(owner="github", repo="awesome-copilot")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ContentCache(ttl=3600.0, clock=clock)


def entry(name: str) -> ContentEntry:
    return ContentEntry(name=name, path=f"prompts/{name}", type="file")


# ---- Keys ------------------------------------------------------------------

def test_cache_key_public_repo(repo):
    assert cache_key(repo, ContentCategory.PROMPTS) == "github.com/github/awesome-copilot|prompts"


def test_cache_key_enterprise_repo():
    repo = RepoSource(owner="team", repo="kit", base_url="https://ghe.example.com/")
    assert cache_key(repo, ContentCategory.SKILLS) == "https://ghe.example.com/team/kit|skills"


# ---- TTL -------------------------------------------------------------------

def test_entry_served_before_ttl(cache, clock, repo):
    cache.store(repo, ContentCategory.PROMPTS, [entry("a.prompt.md")])
    clock.now += 3599
    cached = cache.get(cache_key(repo, ContentCategory.PROMPTS))
    assert cached is not None
    assert [e.name for e in cached.data] == ["a.prompt.md"]


def test_entry_evicted_at_ttl(cache, clock, repo):
    key = cache_key(repo, ContentCategory.PROMPTS)
    cache.store(repo, ContentCategory.PROMPTS, [entry("a.prompt.md")])
    clock.now += 3600
    assert cache.get(key) is None
    assert key not in cache


# ---- Invalidation ----------------------------------------------------------

def test_invalidate_by_repo_prefix_only_hits_that_repo(cache, repo):
    other = RepoSource(owner="github", repo="awesome-copilot-extras")
    cache.store(repo, ContentCategory.PROMPTS, [])
    cache.store(repo, ContentCategory.AGENTS, [])
    cache.store(other, ContentCategory.PROMPTS, [])

    assert cache.invalidate_by_repo_prefix(repo.identity) == 2
    assert len(cache) == 1
    assert cache_key(other, ContentCategory.PROMPTS) in cache


def test_invalidate_by_key(cache, repo):
    cache.store(repo, ContentCategory.PROMPTS, [])
    assert cache.invalidate_by_key(repo.identity, ContentCategory.PROMPTS) is True
    assert cache.invalidate_by_key(repo.identity, ContentCategory.PROMPTS) is False


def test_status_reports_count_and_age(cache, clock, repo):
    assert cache.status() == "Cache empty"
    cache.store(repo, ContentCategory.PROMPTS, [entry("a"), entry("b")])
    clock.now += 125
    assert cache.status() == "github.com/github/awesome-copilot|prompts: 2 files (2m old)"


def test_clear(cache, repo):
    cache.store(repo, ContentCategory.PROMPTS, [])
    cache.clear()
    assert len(cache) == 0


# ---- In-flight guard -------------------------------------------------------

@pytest.mark.asyncio
async def test_concurrent_callers_share_one_fetch():
    guard = InFlightGuard()
    calls = 0
    release = asyncio.Event()

    async def fetch():
        nonlocal calls
        calls += 1
        await release.wait()
        return ["listing"]

    first = asyncio.ensure_future(guard.run("k", fetch))
    second = asyncio.ensure_future(guard.run("k", fetch))
    await asyncio.sleep(0)
    assert "k" in guard

    release.set()
    assert await first == ["listing"]
    assert await second == ["listing"]
    assert calls == 1
    assert "k" not in guard


@pytest.mark.asyncio
async def test_failure_is_shared_and_released():
    guard = InFlightGuard()

    async def boom():
        await asyncio.sleep(0)
        raise RuntimeError("down")

    results = await asyncio.gather(
        guard.run("k", boom), guard.run("k", boom), return_exceptions=True
    )
    assert all(isinstance(r, RuntimeError) for r in results)
    assert guard.keys == []


@pytest.mark.asyncio
async def test_distinct_keys_fetch_independently():
    guard = InFlightGuard()

    async def value(v):
        return v

    a, b = await asyncio.gather(guard.run("a", lambda: value(1)), guard.run("b", lambda: value(2)))
    assert (a, b) == (1, 2)
