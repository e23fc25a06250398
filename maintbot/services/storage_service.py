"""
Blob storage for unit/component images and request/contingency documents.

Only the returned URL is stored in the database.
"""
import asyncio
import logging
import re
import uuid
from pathlib import Path

from maintbot.config import config

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


def safe_filename(filename: str) -> str:
    name = _UNSAFE_CHARS.sub('_', Path(filename).name).strip('._')
    return name or "file"


class LocalBlobStorage:
    """Files under MEDIA_DIR/<owner_id>/, served from MEDIA_BASE_URL."""

    def __init__(self, root: str = None, base_url: str = None):
        self.root = Path(root or config.MEDIA_DIR)
        self.base_url = (base_url or config.MEDIA_BASE_URL).rstrip('/')

    async def save(self, owner_id: str, filename: str, data: bytes) -> str:
        if not data:
            raise ValueError("Empty file")

        stored_name = f"{uuid.uuid4().hex[:8]}_{safe_filename(filename)}"
        target = self.root / owner_id / stored_name
        await asyncio.to_thread(self._write, target, data)

        logging.info(f"Stored {len(data)} bytes for {owner_id} as {stored_name}")
        return f"{self.base_url}/{owner_id}/{stored_name}"

    async def delete(self, url: str) -> bool:
        """Remove the file behind a URL this storage produced. False if unknown."""
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            return False
        root = self.root.resolve()
        target = (root / url[len(prefix):]).resolve()
        if not target.is_relative_to(root) or target == root:
            return False
        return await asyncio.to_thread(self._unlink, target)

    @staticmethod
    def _write(target: Path, data: bytes):
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    @staticmethod
    def _unlink(target: Path) -> bool:
        if not target.exists():
            return False
        target.unlink()
        return True


storage = LocalBlobStorage()
