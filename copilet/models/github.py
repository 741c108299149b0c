"""
GitHub domain models for Copilet.

This module contains strongly typed data classes and enums representing
content categories, repository sources and the entries returned by the
GitHub contents API.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import urlparse


DEFAULT_HOST = "github.com"
ROOT_MAPPING = "root"


class ContentCategory(Enum):
    """The five kinds of content a repository can provide."""

    PLUGINS = "plugins"
    INSTRUCTIONS = "instructions"
    PROMPTS = "prompts"
    AGENTS = "agents"
    SKILLS = "skills"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def local_folder(self) -> str:
        """Folder, relative to the workspace, where this category is saved."""
        return f".github/{self.value}"

    @property
    def lists_directories(self) -> bool:
        """Skills and plugins are folders; everything else is a single file."""
        return self in (ContentCategory.SKILLS, ContentCategory.PLUGINS)


# Per-repository mapping: category -> custom folder, "root", or None (excluded)
FolderMapping = Dict[ContentCategory, Optional[str]]


@dataclass(frozen=True)
class RepoSource:
    """Immutable description of a repository content is fetched from."""

    owner: str
    repo: str
    label: Optional[str] = None
    base_url: Optional[str] = None  # GitHub Enterprise Server, e.g. https://github.example.corp
    branch: Optional[str] = None
    folder_mappings: Optional[FolderMapping] = field(default=None, compare=False, hash=False)

    def __post_init__(self) -> None:
        if not self.owner or not self.repo:
            raise ValueError("Repository owner and repo are required")

        if self.base_url:
            parsed_url = urlparse(self.base_url)
            if not parsed_url.netloc:
                raise ValueError(f"Invalid enterprise base URL: {self.base_url}")

    @property
    def is_enterprise(self) -> bool:
        return bool(self.base_url)

    @property
    def identity(self) -> str:
        host = self.base_url.rstrip('/') if self.base_url else DEFAULT_HOST
        return f'{host}/{self.owner}/{self.repo}'

    @property
    def display_name(self) -> str:
        return f'{self.owner}/{self.repo}'

    def with_mappings(self, folder_mappings: Optional[FolderMapping]) -> "RepoSource":
        return replace(self, folder_mappings=folder_mappings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepoSource":
        mappings = data.get("folderMappings", data.get("folder_mappings"))
        folder_mappings: Optional[FolderMapping] = None
        if isinstance(mappings, dict):
            folder_mappings = {}
            for key, value in mappings.items():
                try:
                    folder_mappings[ContentCategory(key)] = value
                except ValueError:
                    continue
        return cls(
            owner=data.get("owner", ""),
            repo=data.get("repo", ""),
            label=data.get("label"),
            base_url=data.get("baseUrl", data.get("base_url")) or None,
            branch=data.get("branch") or None,
            folder_mappings=folder_mappings,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"owner": self.owner, "repo": self.repo}
        if self.label:
            data["label"] = self.label
        if self.base_url:
            data["baseUrl"] = self.base_url
        if self.branch:
            data["branch"] = self.branch
        if self.folder_mappings is not None:
            data["folderMappings"] = {
                category.value: value for category, value in self.folder_mappings.items()
            }
        return data


@dataclass
class ContentEntry:
    """A file or directory returned by a contents listing."""

    name: str
    path: str
    type: str  # 'file', 'dir'
    size: int = 0
    download_url: Optional[str] = None
    sha: Optional[str] = None
    repo: Optional[RepoSource] = None
    display_name: Optional[str] = None

    @property
    def is_dir(self) -> bool:
        return self.type == 'dir'

    @property
    def is_file(self) -> bool:
        return self.type == 'file'

    @classmethod
    def from_api(cls, data: Dict[str, Any], repo: Optional[RepoSource] = None) -> "ContentEntry":
        return cls(
            name=data.get("name", ""),
            path=data.get("path", ""),
            type=data.get("type", "file"),
            size=data.get("size") or 0,
            download_url=data.get("download_url"),
            sha=data.get("sha"),
            repo=repo,
        )


@dataclass(frozen=True)
class FileContent:
    """Body of a single file fetched by its exact path."""

    content: str
    download_url: Optional[str]
    sha: Optional[str]
    size: int


__all__ = [
    "DEFAULT_HOST",
    "ROOT_MAPPING",
    "ContentCategory",
    "FolderMapping",
    "RepoSource",
    "ContentEntry",
    "FileContent",
]
