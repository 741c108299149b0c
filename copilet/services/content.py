"""
Long-lived content discovery service.

Owns the listing cache and the in-flight guard, merges listings across
repository sources and disambiguates colliding file names.
"""

from collections import Counter
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import (
    PLUGIN_JSON_RELATIVE_PATH,
    ContentCategory,
    ContentEntry,
    PluginManifest,
    RepoSource,
    ServiceConfig,
)
from ..core.cache import ContentCache, InFlightGuard, cache_key
from ..core.manifest import parse_manifest
from ..core.paths import resolve_content_path
from ..infrastructure.error_handler import ContentError, ContentListingError
from ..infrastructure.logger import logger
from ..interfaces.prompts import Prompter
from .github_api import GitHubContentClient


def assign_display_names(entries: List[ContentEntry]) -> List[ContentEntry]:
    """Suffix names that occur more than once with their ``owner/repo``."""

    counts = Counter(entry.name for entry in entries)
    for entry in entries:
        if counts[entry.name] > 1 and entry.repo is not None:
            entry.display_name = f"{entry.name} ({entry.repo.display_name})"
        else:
            entry.display_name = entry.name
    return entries


def filter_for_category(entries: List[ContentEntry], category: ContentCategory) -> List[ContentEntry]:
    if category.lists_directories:
        return [entry for entry in entries if entry.is_dir]
    return [entry for entry in entries if entry.is_file]


class ContentService:
    """
    Discover content across repositories.

    Construct one per process and close it when done; tests build isolated
    instances.
    """

    def __init__(
        self,
        client: GitHubContentClient,
        config: ServiceConfig,
        prompter: Prompter,
        cache: Optional[ContentCache] = None,
    ):
        self.client = client
        self.config = config
        self.prompter = prompter
        self.cache = cache or ContentCache(ttl=config.cache_ttl)
        self._in_flight = InFlightGuard()
        self._sources: List[RepoSource] = list(config.sources)

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> "ContentService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # --- Sources ---

    @property
    def sources(self) -> List[RepoSource]:
        return list(self._sources)

    def update_sources(self, sources: Sequence[RepoSource]) -> None:
        """Replace the source list, dropping cache of repos whose mappings changed."""

        previous: Dict[str, RepoSource] = {source.identity: source for source in self._sources}
        for source in sources:
            old = previous.get(source.identity)
            if old is not None and old.folder_mappings != source.folder_mappings:
                dropped = self.cache.invalidate_by_repo_prefix(source.identity)
                logger.info(f"Folder mappings changed for {source.display_name}, dropped {dropped} cache entries")
        self._sources = list(sources)

    # --- Listings ---

    async def _fetch_listing(self, repo: RepoSource, category: ContentCategory, path: str) -> List[ContentEntry]:
        entries = await self.client.list_category(repo, path)
        files = filter_for_category(entries, category)
        self.cache.store(repo, category, files)
        return files

    async def _load(self, repo: RepoSource, category: ContentCategory, force_refresh: bool) -> List[ContentEntry]:
        path = resolve_content_path(repo, category)
        if path is None:
            logger.debug(f"Category '{category.value}' excluded for {repo.display_name} via folder mappings")
            return []

        key = cache_key(repo, category)
        if not force_refresh:
            cached = self.cache.get(key)
            if cached is not None:
                return [replace(entry) for entry in cached.data]

        # Callers set display names on copies; cached entries stay untouched
        entries = await self._in_flight.run(key, lambda: self._fetch_listing(repo, category, path))
        return [replace(entry) for entry in entries]

    async def get_files_by_repo(
        self,
        repo: RepoSource,
        category: ContentCategory,
        force_refresh: bool = False,
    ) -> List[ContentEntry]:
        """
        Entries of one category in one repository.

        Raises:
            ContentListingError: for any failure other than a missing folder
        """

        if resolve_content_path(repo, category) is not None and not repo.is_enterprise:
            await self.client.auth.proactive_check()

        try:
            entries = await self._load(repo, category, force_refresh)
        except ContentError as e:
            logger.error(f"Failed to load {category.value} from {repo.display_name}: {e}")
            raise ContentListingError(repo.display_name, category.value, e) from e

        for entry in entries:
            entry.display_name = entry.name
        return entries

    async def get_files(
        self,
        category: ContentCategory,
        sources: Optional[Sequence[RepoSource]] = None,
        force_refresh: bool = False,
    ) -> List[ContentEntry]:
        """
        Entries of one category merged across all sources.

        A repository that fails is reported and skipped; the others still
        contribute.
        """

        await self.client.auth.proactive_check()

        merged: List[ContentEntry] = []
        for repo in (sources if sources is not None else self._sources):
            try:
                merged.extend(await self._load(repo, category, force_refresh))
            except ContentError as e:
                self.prompter.warning(f"Failed to load {category.value} from {repo.display_name}: {e}")

        return assign_display_names(merged)

    # --- Plugins ---

    async def fetch_manifest(self, repo: RepoSource, plugin_dir: str) -> Tuple[PluginManifest, str]:
        """Read and parse ``{plugin_dir}/.github/plugin/plugin.json``."""

        manifest_path = f"{plugin_dir.rstrip('/')}/{PLUGIN_JSON_RELATIVE_PATH}"
        file_data = await self.client.get_file_content_by_path(repo, manifest_path)
        return parse_manifest(file_data.content, plugin_dir), file_data.content

    # --- Cache surface ---

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Cleared content cache")

    def clear_repo_cache(self, repo: RepoSource) -> None:
        self.cache.invalidate_by_repo_prefix(repo.identity)
        logger.info(f"Cleared cache for repository: {repo.display_name}")

    def clear_category_cache(self, repo: RepoSource, category: ContentCategory) -> None:
        if self.cache.invalidate_by_key(repo.identity, category):
            logger.debug(f"Cleared cache for {category.value} in {repo.display_name}")

    def get_cache_status(self) -> str:
        return self.cache.status()


__all__ = ["ContentService", "assign_display_names", "filter_for_category"]
