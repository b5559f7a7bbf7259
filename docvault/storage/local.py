import asyncio
import logging
from pathlib import Path

from docvault.core.config import Settings
from docvault.core.errors import NotFound, StorageFailure
from docvault.storage.base import SignedUrlStorage

logger = logging.getLogger(__name__)


class LocalBlobStorage(SignedUrlStorage):
    """Файлы на локальном диске внутри корневого каталога"""

    def __init__(self, settings: Settings, root: str = None):
        super().__init__(settings)
        self.root = Path(root or settings.local_storage_root).resolve()

    def _path(self, blob_ref: str) -> Path:
        path = (self.root / blob_ref).resolve()
        if self.root not in path.parents:
            raise StorageFailure(f"Invalid blob reference: {blob_ref}")
        return path

    async def upload(self, key: str, data: bytes, content_type: str = None) -> str:
        path = self._path(key)

        def write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        try:
            await asyncio.to_thread(write)
        except OSError as e:
            logger.error(f"Error writing {key} to {self.root}: {e}")
            raise StorageFailure(f"Failed to store file {key}") from e

        logger.info(f"Stored {key} ({len(data)} bytes) in local storage")
        return key

    async def fetch(self, blob_ref: str) -> bytes:
        path = self._path(blob_ref)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            raise NotFound(f"Blob {blob_ref} not found")
        except OSError as e:
            raise StorageFailure(f"Failed to read file {blob_ref}") from e

    async def delete(self, blob_ref: str) -> None:
        path = self._path(blob_ref)
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as e:
            raise StorageFailure(f"Failed to delete file {blob_ref}") from e
