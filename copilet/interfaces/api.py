"""
Python API for browsing and downloading Copilot customization content.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import httpx

from ..models import (
    BundleDownloadResult,
    ContentCategory,
    ContentEntry,
    RepoSource,
    ServiceConfig,
)
from ..core.orchestrator import BundleDownloader, relative_to_root
from ..core.tracker import DownloadTracker
from ..infrastructure.error_handler import ContentError
from ..infrastructure.rate_limiter import RateLimitInfo, RateLimitTracker
from ..services import (
    AuthManager,
    ContentService,
    DownloadService,
    GitHubContentClient,
    SessionProvider,
    TokenSessionProvider,
)
from .prompts import NonInteractivePrompter, Prompter

from copilet.infrastructure.logger import logger


TRACKER_RELATIVE_PATH = Path(".copilet") / "downloads.json"

CategoryLike = Union[ContentCategory, str]


def as_category(value: CategoryLike) -> ContentCategory:
    if isinstance(value, ContentCategory):
        return value
    return ContentCategory(value.strip().lower())


class CopilotContentBrowser:
    """
    High-level API for listing and downloading content.

    Wires the content client, the content service, the bundle downloader
    and the download tracker from one ``ServiceConfig``.
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        workspace: Optional[Path] = None,
        prompter: Optional[Prompter] = None,
        session_provider: Optional[SessionProvider] = None,
        verbose: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the browser.

        Args:
            config: Service configuration; defaults apply when omitted
            workspace: Root of the local workspace (defaults to the cwd)
            prompter: User interaction boundary (non-interactive by default)
            session_provider: Source of GitHub session tokens
            verbose: Enable debug logging
            transport: Optional httpx transport, mainly for tests
        """

        self.config = config or ServiceConfig()
        self.workspace = Path(workspace) if workspace else Path.cwd()
        self.prompter = prompter or NonInteractivePrompter()
        self.verbose = verbose

        logger.setLevel(logging.DEBUG if verbose else logging.INFO)

        self.rate_limiter = RateLimitTracker()
        self.auth = AuthManager(
            self.config,
            session_provider or TokenSessionProvider(self.prompter),
            self.prompter,
        )
        self.client = GitHubContentClient(
            self.config, self.auth, rate_limiter=self.rate_limiter, transport=transport
        )
        self.content_service = ContentService(self.client, self.config, self.prompter)
        self.tracker = DownloadTracker(
            self.config.tracker_path or self.workspace / TRACKER_RELATIVE_PATH
        )
        self.downloader = BundleDownloader(
            self.content_service,
            DownloadService(),
            self.tracker,
            self.prompter,
            self.workspace,
            max_concurrent_downloads=self.config.max_concurrent_downloads,
        )

        logger.debug(f"Initialized CopilotContentBrowser for workspace {self.workspace}")

    def set_verbose(self, verbose: bool) -> None:
        self.verbose = verbose
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)
        logger.debug(f"Verbose logging {'enabled' if verbose else 'disabled'}")

    async def close(self) -> None:
        await self.content_service.close()

    async def __aenter__(self) -> "CopilotContentBrowser":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # --- Sources ---

    @property
    def sources(self) -> List[RepoSource]:
        return self.content_service.sources

    def update_sources(self, sources: Sequence[RepoSource]) -> None:
        self.content_service.update_sources(sources)

    def find_source(self, name: str) -> Optional[RepoSource]:
        """Configured source by ``owner/repo`` or by its full identity."""

        wanted = name.strip().strip("/").lower()
        for source in self.sources:
            if wanted in (source.display_name.lower(), source.identity.lower()):
                return source
        return None

    def refresh_repo(self, repo: RepoSource) -> None:
        """Drop every cached listing of one repository."""

        self.content_service.clear_repo_cache(repo)

    # --- Listing ---

    async def get_files(self, category: CategoryLike, force_refresh: bool = False) -> List[ContentEntry]:
        return await self.content_service.get_files(as_category(category), force_refresh=force_refresh)

    async def get_files_by_repo(
        self,
        repo: RepoSource,
        category: CategoryLike,
        force_refresh: bool = False,
    ) -> List[ContentEntry]:
        return await self.content_service.get_files_by_repo(repo, as_category(category), force_refresh)

    async def find_entry(self, category: CategoryLike, name: str) -> Optional[ContentEntry]:
        """Look up an entry by display name, falling back to its plain name."""

        entries = await self.get_files(category)
        for entry in entries:
            if entry.display_name == name:
                return entry
        matches = [entry for entry in entries if entry.name == name]
        return matches[0] if matches else None

    # --- Downloading ---

    async def download(self, entry: ContentEntry, category: CategoryLike) -> BundleDownloadResult:
        category = as_category(category)
        logger.debug(f"Downloading {entry.path} ({category.value}) from {entry.repo.display_name if entry.repo else '?'}")
        return await self.downloader.download(entry, category)

    async def check_updates(self, category: CategoryLike) -> List[ContentEntry]:
        """Downloaded entries whose remote sha has changed since."""

        category = as_category(category)
        entries = await self.content_service.get_files(category, force_refresh=True)
        return self.tracker.find_items_with_updates(entries, category)

    # --- Preview ---

    async def preview(self, entry: ContentEntry, category: CategoryLike) -> str:
        """
        Markdown preview of an entry without downloading it.

        Skill folders show their SKILL.md, or a list of their files when
        there is none. Plugin folders show a manifest summary followed by
        the README. Files show their body.
        """

        category = as_category(category)
        if entry.is_dir and entry.repo is not None:
            if category is ContentCategory.PLUGINS:
                return await self._preview_plugin(entry)
            return await self._preview_folder(entry)
        return await self.downloader.fetch_entry(entry)

    async def _preview_folder(self, entry: ContentEntry) -> str:
        contents = await self.client.list_contents(entry.repo, entry.path)
        skill_md = next((f for f in contents if f.is_file and f.name == "SKILL.md"), None)
        if skill_md is not None:
            return await self.downloader.fetch_entry(skill_md)

        file_list = "\n".join(
            f"- {relative_to_root(entry.path, f.path)}" for f in contents if f.is_file
        )
        return f"# {entry.name}\n\n**Skill Folder Contents:**\n\n{file_list}\n\nDownload this skill to get all files."

    async def _preview_plugin(self, entry: ContentEntry) -> str:
        text = ""
        try:
            manifest, _raw = await self.content_service.fetch_manifest(entry.repo, entry.path)
        except ContentError as e:
            logger.debug(f"No plugin metadata for {entry.path}: {e}")
        else:
            lines = [f"# {manifest.name}", "", manifest.description, ""]
            if manifest.version:
                lines.append(f"**Version:** {manifest.version}")
            if manifest.author and manifest.author.get("name"):
                lines.append(f"**Author:** {manifest.author['name']}")
            if manifest.license:
                lines.append(f"**License:** {manifest.license}")
            if manifest.tags:
                lines.append(f"**Tags:** {', '.join(manifest.tags)}")
            lines += ["", f"**Items ({len(manifest.items)}):**"]
            lines += [f"- {item.last_segment} ({item.kind.value})" for item in manifest.items]
            text = "\n".join(lines) + "\n\n---\n\n"

        contents = await self.client.list_contents(entry.repo, entry.path)
        readme = next((f for f in contents if f.is_file and f.name == "README.md"), None)
        if readme is not None:
            return text + await self.downloader.fetch_entry(readme)
        return text or f"# {entry.name}\n\n*(No plugin metadata or README found)*"

    # --- Cache & limits ---

    def get_cache_status(self) -> str:
        return self.content_service.get_cache_status()

    def clear_cache(self) -> None:
        self.content_service.clear_cache()

    def get_rate_limit_info(self) -> RateLimitInfo:
        return self.client.get_rate_limit_info()


__all__ = ["CopilotContentBrowser", "as_category"]
