"""
Configuration models for Copilet.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .github import RepoSource


DEFAULT_SOURCES = [
    RepoSource(owner="github", repo="awesome-copilot", label="Awesome Copilot"),
]


def _config_path() -> Path:
    """Get path to the Copilet configuration file."""
    if os.name == "nt":
        base = os.environ.get("APPDATA") or str(Path.home())
        return Path(base) / "copilet" / "config.json"
    return Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))) / "copilet" / "config.json"


@dataclass
class ServiceConfig:
    """
    Unified configuration for content discovery and downloads.

    Covers authentication, TLS policy for enterprise hosts, caching and
    concurrency limits.
    """

    # Authentication
    enable_auth: bool = True
    enterprise_token: Optional[str] = None
    allow_insecure_enterprise_certs: bool = False

    # Caching and request settings
    cache_ttl: float = 3600.0  # seconds
    request_timeout: float = 10.0
    user_agent: str = "Copilet/0.1.0"
    api_version: str = "2022-11-28"

    # Concurrency settings
    max_concurrent_listings: int = 8
    max_concurrent_downloads: int = 5

    # Sources and local state
    sources: List[RepoSource] = field(default_factory=lambda: list(DEFAULT_SOURCES))
    tracker_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.cache_ttl <= 0:
            raise ValueError("cache_ttl must be positive")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.max_concurrent_listings <= 0:
            raise ValueError("max_concurrent_listings must be positive")
        if self.max_concurrent_downloads <= 0:
            raise ValueError("max_concurrent_downloads must be positive")

    def to_dict(self) -> dict:
        return {
            "enableGithubAuth": self.enable_auth,
            "enterpriseToken": self.enterprise_token,
            "allowInsecureEnterpriseCerts": self.allow_insecure_enterprise_certs,
            "cacheTtl": self.cache_ttl,
            "maxConcurrentListings": self.max_concurrent_listings,
            "maxConcurrentDownloads": self.max_concurrent_downloads,
            "repositories": [source.to_dict() for source in self.sources],
            "trackerPath": str(self.tracker_path) if self.tracker_path else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ServiceConfig":
        repositories = data.get("repositories")
        sources = (
            [RepoSource.from_dict(item) for item in repositories]
            if isinstance(repositories, list) and repositories
            else list(DEFAULT_SOURCES)
        )
        tracker_path = data.get("trackerPath")
        return cls(
            enable_auth=data.get("enableGithubAuth", True),
            enterprise_token=data.get("enterpriseToken") or None,
            allow_insecure_enterprise_certs=data.get("allowInsecureEnterpriseCerts", False),
            cache_ttl=data.get("cacheTtl", 3600.0),
            max_concurrent_listings=data.get("maxConcurrentListings", 8),
            max_concurrent_downloads=data.get("maxConcurrentDownloads", 5),
            sources=sources,
            tracker_path=Path(tracker_path) if tracker_path else None,
        )

    def save(self, path: Optional[Path] = None) -> Path:
        path = path or _config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "ServiceConfig":
        """Load from disk; a missing file yields defaults. The env token wins."""
        path = path or _config_path()
        config = cls()
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            config = cls.from_dict(data)

        env_token = os.environ.get("COPILET_ENTERPRISE_TOKEN")
        if env_token:
            config.enterprise_token = env_token
        return config


__all__ = [
    "DEFAULT_SOURCES",
    "ServiceConfig",
]
