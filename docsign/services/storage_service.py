"""Content storage for uploaded documents.

Only the locator returned by save() is persisted with the document; the bytes
stay on disk under UPLOAD_DIR.
"""

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from docsign.config import settings

logger = logging.getLogger(__name__)

LOCATOR_PREFIX = "/uploads/"


@dataclass(frozen=True)
class StoredContent:
    file_name: str
    locator: str
    size: int


class LocalContentStorage:
    """Stores uploads as files in a single directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _new_file_name(self, original_name: str) -> str:
        suffix = Path(original_name).suffix.lower()
        return f"document-{int(time.time() * 1000)}-{secrets.token_hex(4)}{suffix}"

    def _write(self, path: Path, data: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def save(self, original_name: str, data: bytes) -> StoredContent:
        file_name = self._new_file_name(original_name)
        await asyncio.to_thread(self._write, self.root / file_name, data)
        logger.info("Stored upload", extra={"file_name": file_name, "size": len(data)})
        return StoredContent(file_name=file_name, locator=f"{LOCATOR_PREFIX}{file_name}", size=len(data))

    def path_for(self, locator: str) -> Path:
        """Filesystem path for a locator; never escapes the storage root."""
        return self.root / Path(locator).name

    async def delete(self, locator: str) -> None:
        path = self.path_for(locator)
        await asyncio.to_thread(path.unlink, True)


@lru_cache()
def get_content_storage() -> LocalContentStorage:
    """Process-wide storage handle."""
    return LocalContentStorage(settings.UPLOAD_DIR)
