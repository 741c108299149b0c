"""
Core data models API surface for Copilet.

This file re-exports model classes from domain-specific modules so callers
can import them as `from copilet.models import X`.
"""

from .github import (
    DEFAULT_HOST,
    ROOT_MAPPING,
    ContentCategory,
    FolderMapping,
    RepoSource,
    ContentEntry,
    FileContent,
)
from .plugin import (
    PLUGIN_JSON_RELATIVE_PATH,
    PluginKind,
    ManifestSchema,
    PluginItem,
    PluginManifest,
)
from .download import (
    DownloadStatus,
    CacheEntry,
    BundleDownloadResult,
    DownloadRecord,
)
from .config import DEFAULT_SOURCES, ServiceConfig

__all__ = [
    # GitHub models
    "DEFAULT_HOST",
    "ROOT_MAPPING",
    "ContentCategory",
    "FolderMapping",
    "RepoSource",
    "ContentEntry",
    "FileContent",
    # Plugin models
    "PLUGIN_JSON_RELATIVE_PATH",
    "PluginKind",
    "ManifestSchema",
    "PluginItem",
    "PluginManifest",
    # Download models
    "DownloadStatus",
    "CacheEntry",
    "BundleDownloadResult",
    "DownloadRecord",
    # Config models
    "DEFAULT_SOURCES",
    "ServiceConfig",
]
