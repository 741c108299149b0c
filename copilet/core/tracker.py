"""
Download tracking and update detection.

Each download is recorded with the remote blob sha (and a hash of the
written content when available) so a later listing can tell whether the
remote side has moved on.
"""

import hashlib
import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..models import ContentCategory, ContentEntry, DownloadRecord
from ..infrastructure.logger import logger


def item_id(entry: ContentEntry, category: ContentCategory) -> str:
    repo = entry.repo.identity if entry.repo else "unknown"
    return f"{repo}|{category.value}|{entry.path}"


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class DownloadTracker:
    """Remembers what was downloaded; optionally persisted as JSON."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path
        self._records: Dict[str, DownloadRecord] = {}
        if path is not None:
            self._load()

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable download records at {self.path}: {e}")
            return
        for raw in data.get("downloads", []):
            record = DownloadRecord.from_dict(raw)
            self._records[record.item_id] = record

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"downloads": [record.to_dict() for record in self._records.values()]}
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def record_download(
        self,
        entry: ContentEntry,
        category: ContentCategory,
        content: Optional[str] = None,
    ) -> DownloadRecord:
        record = DownloadRecord(
            item_id=item_id(entry, category),
            sha=entry.sha,
            content_hash=content_hash(content) if content is not None else None,
        )
        self._records[record.item_id] = record
        self._save()
        logger.debug(f"Recorded download of {record.item_id} (sha={record.sha})")
        return record

    def get_record(self, key: str) -> Optional[DownloadRecord]:
        return self._records.get(key)

    def is_downloaded(self, key: str) -> bool:
        return key in self._records

    def has_update(self, entry: ContentEntry, category: ContentCategory) -> bool:
        """True when the recorded sha differs from the one now listed remotely."""

        record = self._records.get(item_id(entry, category))
        if record is None or not record.sha or not entry.sha:
            return False
        return record.sha != entry.sha

    def find_items_with_updates(
        self,
        entries: Iterable[ContentEntry],
        category: ContentCategory,
    ) -> List[ContentEntry]:
        return [entry for entry in entries if self.has_update(entry, category)]

    def forget(self, key: str) -> None:
        if self._records.pop(key, None) is not None:
            self._save()


__all__ = ["DownloadTracker", "item_id", "content_hash"]
