"""
Orchestrator materializing remote content onto the local workspace:
single files, skill folders and multi-item plugin bundles.
"""

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from ..models import (
    PLUGIN_JSON_RELATIVE_PATH,
    BundleDownloadResult,
    ContentCategory,
    ContentEntry,
    DownloadStatus,
    PluginItem,
    PluginKind,
    PluginManifest,
    RepoSource,
)
from ..services import ContentService, DownloadService
from ..infrastructure.error_handler import ContentError
from ..interfaces.prompts import Prompter
from .notes import NOTE_FILENAME, generate_note_content
from .tracker import DownloadTracker

from copilet.infrastructure.logger import logger


# Plugin sub-folders mirrored next to the saved manifest
PLUGIN_MIRRORED_FOLDERS = ("agents", "commands")


def relative_to_root(root: str, path: str) -> str:
    """Strip the bundle root prefix from a remote path."""

    prefix = root.rstrip('/') + '/'
    return path[len(prefix):] if path.startswith(prefix) else path


####
##      DOWNLOAD STATISTICS MODEL
#####
@dataclass
class DownloadStatistics:
    """Byte and file counters for one download invocation."""

    downloaded_files: int = 0
    failed_files: int = 0
    total_bytes: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return 0.0


####
##      BUNDLE DOWNLOADER
#####
class BundleDownloader:
    """
    Downloads content entries into ``{workspace}/.github/{category}``.

    File fetches run concurrently under a semaphore; a failing item or file
    is counted and never aborts its siblings. Only a failure to resolve the
    bundle (unreadable manifest, unreachable listing) fails the whole
    invocation.
    """

    def __init__(
        self,
        content_service: ContentService,
        download_service: DownloadService,
        tracker: DownloadTracker,
        prompter: Prompter,
        workspace: Path,
        max_concurrent_downloads: int = 5,
    ):
        self.content_service = content_service
        self.client = content_service.client
        self.download_service = download_service
        self.tracker = tracker
        self.prompter = prompter
        self.workspace = workspace
        self.max_concurrent_downloads = max_concurrent_downloads
        self._semaphore = asyncio.Semaphore(max_concurrent_downloads)
        self._state = DownloadStatus.IDLE

    @property
    def state(self) -> DownloadStatus:
        return self._state

    def _transition(self, state: DownloadStatus) -> None:
        logger.debug(f"Download state: {self._state.value} -> {state.value}")
        self._state = state

    def category_folder(self, category: ContentCategory) -> Path:
        return self.workspace / category.local_folder

    def is_contained(self, target: Path, root: Optional[Path] = None) -> bool:
        """True when ``target`` lies strictly below ``root`` (the workspace by default)."""

        root = (root or self.workspace).resolve()
        return root in target.resolve().parents

    def _guard(self, target: Path, root: Optional[Path] = None) -> Path:
        # Names and paths come from remote data
        if not self.is_contained(target, root):
            raise ContentError(f"Refusing to write outside {root or self.workspace}: {target}")
        return target

    async def download(self, entry: ContentEntry, category: ContentCategory) -> BundleDownloadResult:
        """Pick the download mode from the category and entry type."""

        self._state = DownloadStatus.IDLE
        if category is ContentCategory.PLUGINS and entry.is_dir:
            return await self.download_plugin(entry)
        if entry.is_dir:
            return await self.download_skill(entry, category)
        return await self.download_file(entry, category)

    # --- Shared helpers ---

    def _cancelled(self, result: BundleDownloadResult) -> BundleDownloadResult:
        self._transition(DownloadStatus.CANCELLED)
        result.status = DownloadStatus.CANCELLED
        result.completed_at = datetime.now()
        return result

    def _failed(self, result: BundleDownloadResult, message: str) -> BundleDownloadResult:
        logger.error(message)
        self._transition(DownloadStatus.FAILED)
        result.mark_failed(message)
        return result

    def _record(self, entry: ContentEntry, category: ContentCategory, content: Optional[str] = None) -> None:
        self.tracker.record_download(entry, category, content)
        if entry.repo is not None:
            self.content_service.clear_category_cache(entry.repo, category)
        self._transition(DownloadStatus.RECORDED)

    def _complete(self, result: BundleDownloadResult, stats: DownloadStatistics) -> BundleDownloadResult:
        stats.end_time = datetime.now()
        result.mark_completed()
        self._transition(DownloadStatus.COMPLETED)
        logger.debug(
            f"Download completed: {stats.downloaded_files} successful, "
            f"{stats.failed_files} failed, {stats.total_bytes} bytes "
            f"in {stats.duration_seconds:.2f}s"
        )
        return result

    async def fetch_entry(self, entry: ContentEntry) -> str:
        """Body of a file entry, by download URL or by repository path."""

        if entry.download_url:
            return await self.client.get_file_content(entry.download_url)
        if entry.repo is None:
            raise ContentError(f"No download location for {entry.path}")
        file_data = await self.client.get_file_content_by_path(entry.repo, entry.path)
        return file_data.content

    async def _download_to(self, entry: ContentEntry, target_path: Path) -> int:
        self._guard(target_path)
        async with self._semaphore:
            content = await self.fetch_entry(entry)
            return await self.download_service.save_content(content, target_path)

    async def _write_files(
        self,
        placements: List[Tuple[ContentEntry, Path]],
        stats: DownloadStatistics,
    ) -> Tuple[List[str], List[str]]:
        """
        Download files concurrently into their target paths.

        Returns:
            Tuple of (written paths, failed paths)
        """

        results = await asyncio.gather(
            *(self._download_to(entry, target) for entry, target in placements),
            return_exceptions=True,
        )

        written, failed = [], []
        for (entry, _target), outcome in zip(placements, results):
            if isinstance(outcome, Exception):
                logger.error(f"Failed to download {entry.path}: {outcome}")
                failed.append(entry.path)
                stats.failed_files += 1
            else:
                written.append(entry.path)
                stats.downloaded_files += 1
                stats.total_bytes += outcome
        return written, failed

    async def _download_tree(
        self,
        repo: RepoSource,
        root: str,
        target_dir: Path,
        stats: DownloadStatistics,
        flatten: bool = False,
        listing: Optional[List[ContentEntry]] = None,
    ) -> Tuple[List[str], List[str]]:
        """Mirror (or flatten) every file below ``root`` into ``target_dir``."""

        if listing is None:
            listing = await self.client.list_directory_recursive(repo, root)
        await self.download_service.ensure_directory(target_dir)

        placements = [
            (entry, target_dir / (entry.name if flatten else relative_to_root(root, entry.path)))
            for entry in listing
            if entry.is_file
        ]
        return await self._write_files(placements, stats)

    # --- Single file ---

    async def download_file(self, entry: ContentEntry, category: ContentCategory) -> BundleDownloadResult:
        """Download one file under a confirmed name."""

        stats = DownloadStatistics(start_time=datetime.now())
        result = BundleDownloadResult(status=DownloadStatus.RESOLVING)
        self._transition(DownloadStatus.RESOLVING)
        target_dir = self.category_folder(category)

        filename = await self.prompter.ask_name(
            f"Download {entry.name} to {category.local_folder}", entry.name
        )
        if not filename or not filename.strip():
            return self._cancelled(result)

        target_path = target_dir / filename.strip()
        result.target = target_path
        if not self.is_contained(target_path, target_dir):
            return self._failed(result, f"Refusing to write outside {category.local_folder}: {target_path}")

        if await self.download_service.exists(target_path):
            overwrite = await self.prompter.confirm(
                f"File {filename.strip()} already exists. Do you want to overwrite it?", "Overwrite"
            )
            if not overwrite:
                return self._cancelled(result)

        self._transition(DownloadStatus.FETCHING)
        try:
            content = await self.fetch_entry(entry)
        except ContentError as e:
            result.error_count = 1
            result.failed_paths = [entry.path]
            return self._failed(result, f"Failed to download {entry.name}: {e}")

        self._transition(DownloadStatus.WRITING)
        stats.total_bytes += await self.download_service.save_content(content, target_path)
        stats.downloaded_files += 1
        result.downloaded_count = 1
        result.downloaded_items.append(filename.strip())

        self._record(entry, category, content)
        self.prompter.info(f"Successfully downloaded {filename.strip()}")
        return self._complete(result, stats)

    # --- Skill folder ---

    async def download_skill(
        self,
        entry: ContentEntry,
        category: ContentCategory = ContentCategory.SKILLS,
    ) -> BundleDownloadResult:
        """Download a folder, keeping the structure below its root."""

        stats = DownloadStatistics(start_time=datetime.now())
        result = BundleDownloadResult(status=DownloadStatus.RESOLVING)
        self._transition(DownloadStatus.RESOLVING)

        folder_name = await self.prompter.ask_name(
            f"Download skill folder {entry.name} to {category.local_folder}", entry.name
        )
        if not folder_name or not folder_name.strip():
            return self._cancelled(result)

        target_dir = self.category_folder(category) / folder_name.strip()
        result.target = target_dir
        if not self.is_contained(target_dir, self.category_folder(category)):
            return self._failed(result, f"Refusing to write outside {category.local_folder}: {target_dir}")

        if await self.download_service.exists(target_dir):
            overwrite = await self.prompter.confirm(
                f"Skill folder {folder_name.strip()} already exists. Do you want to overwrite it?",
                "Overwrite",
            )
            if not overwrite:
                return self._cancelled(result)

        if entry.repo is None:
            return self._failed(result, f"No repository for {entry.path}")

        try:
            listing = await self.client.list_directory_recursive(entry.repo, entry.path)
        except ContentError as e:
            return self._failed(result, f"Failed to fetch directory contents for {entry.path}: {e}")

        await self.download_service.remove_directory(target_dir)

        self._transition(DownloadStatus.FETCHING)
        written, failed = await self._download_tree(
            entry.repo, entry.path, target_dir, stats, listing=listing
        )

        self._transition(DownloadStatus.WRITING)
        result.downloaded_count = len(written)
        result.error_count = len(failed)
        result.failed_paths = failed
        result.downloaded_items = [relative_to_root(entry.path, path) for path in written]

        self._record(entry, category)
        if failed:
            self.prompter.warning(
                f"Downloaded skill folder {folder_name.strip()} with {len(failed)} failed file(s)"
            )
        else:
            self.prompter.info(f"Successfully downloaded skill folder {folder_name.strip()}")
        return self._complete(result, stats)

    # --- Plugin bundle ---

    async def _download_plugin_item(
        self,
        repo: RepoSource,
        item: PluginItem,
        stats: DownloadStatistics,
    ) -> str:
        """Download one manifest item into its category folder."""

        category = item.kind.category
        category_dir = self.category_folder(category)
        await self.download_service.ensure_directory(category_dir)
        name = item.last_segment

        if item.kind is PluginKind.SKILL:
            target_dir = self._guard(category_dir / name, category_dir)
            listing = await self.client.list_directory_recursive(repo, item.path)
            await self.download_service.remove_directory(target_dir)
            written, failed = await self._download_tree(repo, item.path, target_dir, stats, listing=listing)
            if failed:
                raise ContentError(f"{len(failed)} file(s) of {item.path} failed")
            return f"{item.kind.value}: {name} ({len(written)} files)"

        if item.is_directory_reference:
            written, failed = await self._download_tree(repo, item.path, category_dir, stats, flatten=True)
            if failed:
                raise ContentError(f"{len(failed)} file(s) of {item.path} failed")
            return f"{item.kind.value}: {name}/ ({len(written)} files)"

        target_path = self._guard(category_dir / name, category_dir)
        async with self._semaphore:
            file_data = await self.client.get_file_content_by_path(repo, item.path)
            stats.total_bytes += await self.download_service.save_content(file_data.content, target_path)
        stats.downloaded_files += 1
        return f"{item.kind.value}: {name}"

    async def _save_plugin_extras(self, entry: ContentEntry, manifest: PluginManifest) -> None:
        """
        Best-effort copies next to the plugin: manifest, mirrored folders,
        README and the slash command note. Failures are logged only.
        """

        plugins_root = self.category_folder(ContentCategory.PLUGINS)
        plugin_dir = plugins_root / manifest.id
        if not self.is_contained(plugin_dir, plugins_root):
            logger.warning(f"Skipping plugin files: '{manifest.id}' does not name a folder under {plugins_root}")
            return

        try:
            await self.download_service.save_content(
                json.dumps(manifest.to_dict(), indent=2),
                plugin_dir / PLUGIN_JSON_RELATIVE_PATH,
            )
        except OSError as e:
            logger.warning(f"Failed to save plugin.json locally: {e}")

        readme = ""
        if entry.repo is not None:
            try:
                readme = await self._mirror_plugin_files(entry.repo, entry.path, plugin_dir)
            except (ContentError, OSError) as e:
                logger.warning(f"Failed to download additional plugin files: {e}")

        try:
            await self.download_service.save_content(
                generate_note_content(readme, manifest.id),
                plugin_dir / NOTE_FILENAME,
            )
        except OSError as e:
            logger.warning(f"Failed to write {NOTE_FILENAME}: {e}")

    async def _mirror_plugin_files(self, repo: RepoSource, root: str, plugin_dir: Path) -> str:
        """Copy agents/, commands/ and README.md; returns the README text."""

        listing = await self.client.list_directory_recursive(repo, root)
        top_level = [entry for entry in listing if '/' not in relative_to_root(root, entry.path)]

        for folder in PLUGIN_MIRRORED_FOLDERS:
            source = next((e for e in top_level if e.is_dir and e.name == folder), None)
            if source is None:
                continue
            placements = [
                (e, plugin_dir / folder / relative_to_root(source.path, e.path))
                for e in listing
                if e.is_file and e.path.startswith(source.path + '/')
            ]
            _written, failed = await self._write_files(placements, DownloadStatistics())
            for path in failed:
                logger.warning(f"Failed to copy plugin file {path}")

        readme_entry = next((e for e in top_level if e.is_file and e.name == "README.md"), None)
        if readme_entry is None:
            return ""
        try:
            readme = await self.fetch_entry(readme_entry)
            await self.download_service.save_content(readme, plugin_dir / "README.md")
            return readme
        except (ContentError, OSError) as e:
            logger.warning(f"Failed to download plugin README.md: {e}")
            return ""

    async def download_plugin(self, entry: ContentEntry) -> BundleDownloadResult:
        """
        Download every item a plugin manifest lists.

        Args:
            entry: The plugin directory entry

        Returns:
            BundleDownloadResult with per-item success and failure counts
        """

        stats = DownloadStatistics(start_time=datetime.now())
        result = BundleDownloadResult(status=DownloadStatus.RESOLVING)
        self._transition(DownloadStatus.RESOLVING)

        if entry.repo is None:
            return self._failed(result, f"No repository for {entry.path}")

        try:
            manifest, _raw = await self.content_service.fetch_manifest(entry.repo, entry.path)
        except ContentError as e:
            self.prompter.error(f"Failed to read plugin metadata: {e}")
            return self._failed(result, f"Failed to parse plugin.json: {e}")

        result.target = self.category_folder(ContentCategory.PLUGINS) / manifest.id

        if not manifest.items:
            self.prompter.warning(f'Plugin "{manifest.name}" has no items to download.')
            return self._complete(result, stats)

        confirmed = await self.prompter.confirm(
            f'Download plugin "{manifest.name}"?\n\n{manifest.description}\n\n'
            f"{len(manifest.items)} item(s) will be saved to their category folders.",
            "Download",
        )
        if not confirmed:
            return self._cancelled(result)

        self._transition(DownloadStatus.FETCHING)
        outcomes = await asyncio.gather(
            *(self._download_plugin_item(entry.repo, item, stats) for item in manifest.items),
            return_exceptions=True,
        )

        for item, outcome in zip(manifest.items, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Failed to download plugin item {item.path}: {outcome}")
                result.error_count += 1
                result.failed_paths.append(item.path)
            else:
                result.downloaded_count += 1
                result.downloaded_items.append(outcome)

        self._transition(DownloadStatus.WRITING)
        await self._save_plugin_extras(entry, manifest)

        self._record(entry, ContentCategory.PLUGINS)
        self.prompter.info(f'Plugin "{manifest.name}" downloaded! {result.summary()}')
        return self._complete(result, stats)


__all__ = ["BundleDownloader", "DownloadStatistics", "relative_to_root"]
