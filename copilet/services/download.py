"""
Local filesystem writes for downloaded content.

Blocking filesystem calls run in a worker thread so downloads keep
interleaving on the event loop.
"""

import asyncio
import shutil
from pathlib import Path

from ..infrastructure.logger import logger


class DownloadService:
    """Writes files and prepares folders under the workspace."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    async def ensure_directory(self, path: Path) -> None:
        await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)

    async def exists(self, path: Path) -> bool:
        return await asyncio.to_thread(path.exists)

    async def remove_directory(self, path: Path) -> None:
        if await self.exists(path):
            logger.debug(f"Removing existing folder {path}")
            await asyncio.to_thread(shutil.rmtree, path)

    async def save_content(self, content: str, target_path: Path) -> int:
        """
        Write text content, creating parent folders.

        Returns:
            Number of bytes written
        """

        data = content.encode(self.encoding)
        await self.ensure_directory(target_path.parent)
        await asyncio.to_thread(target_path.write_bytes, data)
        return len(data)


__all__ = ["DownloadService"]
