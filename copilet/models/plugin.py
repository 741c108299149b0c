"""
Plugin manifest models for Copilet.

A plugin is a directory holding a ``.github/plugin/plugin.json`` manifest
that lists the instructions, prompts, agents and skills it bundles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .github import ContentCategory


# Manifest location relative to a plugin directory
PLUGIN_JSON_RELATIVE_PATH = ".github/plugin/plugin.json"


class PluginKind(Enum):
    """Allowed values of a manifest item's ``kind``."""

    INSTRUCTION = "instruction"
    PROMPT = "prompt"
    AGENT = "agent"
    SKILL = "skill"

    @property
    def category(self) -> ContentCategory:
        return _KIND_TO_CATEGORY[self]


_KIND_TO_CATEGORY = {
    PluginKind.INSTRUCTION: ContentCategory.INSTRUCTIONS,
    PluginKind.PROMPT: ContentCategory.PROMPTS,
    PluginKind.AGENT: ContentCategory.AGENTS,
    PluginKind.SKILL: ContentCategory.SKILLS,
}


class ManifestSchema(Enum):
    """Which manifest layout a plugin.json was written in."""

    LEGACY = "legacy"          # explicit "items" array of {path, kind}
    SHORTHAND = "shorthand"    # "agents" / "skills" arrays of relative paths


@dataclass(frozen=True)
class PluginItem:
    """One downloadable item of a plugin, with a repository-relative path."""

    path: str
    kind: PluginKind

    @property
    def last_segment(self) -> str:
        return self.path.rstrip('/').split('/')[-1] or self.path

    @property
    def is_directory_reference(self) -> bool:
        """Items whose last segment has no extension point at a folder."""
        return '.' not in self.last_segment

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "kind": self.kind.value}


@dataclass
class PluginManifest:
    """Parsed and validated plugin.json, reduced to one canonical item list."""

    id: str
    name: str
    description: str
    items: List[PluginItem] = field(default_factory=list)
    schema: ManifestSchema = ManifestSchema.LEGACY
    version: Optional[str] = None
    author: Optional[Dict[str, Any]] = None
    repository: Optional[str] = None
    license: Optional[str] = None
    featured: Optional[bool] = None
    tags: List[str] = field(default_factory=list)
    display: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
        }
        optional = {
            "version": self.version,
            "author": self.author,
            "repository": self.repository,
            "license": self.license,
            "featured": self.featured,
            "tags": self.tags or None,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        data["items"] = [item.to_dict() for item in self.items]
        if self.display is not None:
            data["display"] = self.display
        return data


__all__ = [
    "PLUGIN_JSON_RELATIVE_PATH",
    "PluginKind",
    "ManifestSchema",
    "PluginItem",
    "PluginManifest",
]
