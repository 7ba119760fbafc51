"""Disk persistence for inbound media."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import time
import uuid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class MediaStore:
    """Saves attachment bytes under a media directory.

    The saved path is the opaque attachment reference kept in history.
    """

    def __init__(self, media_dir: Path) -> None:
        self.media_dir = media_dir

    async def save(self, data: bytes, mime_type: str = "image/jpeg") -> str:
        """Write ``data`` to a new file and return its path."""
        suffix = mimetypes.guess_extension(mime_type) or ".bin"
        path = self.media_dir / f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{suffix}"
        await asyncio.to_thread(self._write, path, data)
        logger.info("Media saved: %s (%d bytes)", path.name, len(data))
        return str(path)

    def _write(self, path: Path, data: bytes) -> None:
        self.media_dir.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
