"""
Download domain models for Copilet.

This module contains data classes and enums representing cached listings,
download results and the records used for update detection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .github import ContentCategory, ContentEntry, RepoSource


class DownloadStatus(Enum):
    """State of a single download invocation."""

    IDLE = "idle"
    RESOLVING = "resolving"       # reading the manifest or listing the directory
    FETCHING = "fetching"
    WRITING = "writing"
    RECORDED = "recorded"
    COMPLETED = "completed"
    FAILED = "failed"             # resolution failed, nothing was written
    CANCELLED = "cancelled"       # user declined a confirmation


@dataclass
class CacheEntry:
    """Cached listing of one category in one repository."""

    category: ContentCategory
    repo: RepoSource
    data: List[ContentEntry]
    timestamp: float

    def age(self, now: float) -> float:
        return max(0.0, now - self.timestamp)

    def is_valid(self, now: float, ttl: float) -> bool:
        return (now - self.timestamp) < ttl


@dataclass
class BundleDownloadResult:
    """Outcome of a download, including partial failures."""

    status: DownloadStatus
    target: Optional[Path] = None
    downloaded_count: int = 0
    error_count: int = 0
    failed_paths: List[str] = field(default_factory=list)
    downloaded_items: List[str] = field(default_factory=list)
    error_message: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def is_successful(self) -> bool:
        return self.status == DownloadStatus.COMPLETED and self.error_count == 0

    @property
    def is_partial(self) -> bool:
        return self.downloaded_count > 0 and self.error_count > 0

    @property
    def total_items(self) -> int:
        return self.downloaded_count + self.error_count

    def mark_completed(self) -> None:
        self.completed_at = datetime.now()
        self.status = DownloadStatus.COMPLETED

    def mark_failed(self, message: str) -> None:
        self.completed_at = datetime.now()
        self.status = DownloadStatus.FAILED
        self.error_message = message

    def summary(self) -> str:
        message = f"Downloaded {self.downloaded_count}/{self.total_items} item(s) successfully."
        if self.error_count > 0:
            message += f" {self.error_count} item(s) failed."
        return message


@dataclass
class DownloadRecord:
    """What was downloaded, and which remote version it was."""

    item_id: str
    sha: Optional[str] = None
    content_hash: Optional[str] = None
    downloaded_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "sha": self.sha,
            "content_hash": self.content_hash,
            "downloaded_at": self.downloaded_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DownloadRecord":
        downloaded_at = data.get("downloaded_at")
        return cls(
            item_id=data.get("item_id", ""),
            sha=data.get("sha"),
            content_hash=data.get("content_hash"),
            downloaded_at=datetime.fromisoformat(downloaded_at) if downloaded_at else datetime.now(),
        )


__all__ = [
    "DownloadStatus",
    "CacheEntry",
    "BundleDownloadResult",
    "DownloadRecord",
]
