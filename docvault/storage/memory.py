from typing import Dict

from docvault.core.config import Settings
from docvault.core.errors import NotFound
from docvault.storage.base import SignedUrlStorage


class InMemoryBlobStorage(SignedUrlStorage):
    """Хранилище в памяти процесса для разработки и тестов"""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self._blobs: Dict[str, bytes] = {}
        self._content_types: Dict[str, str] = {}

    async def upload(self, key: str, data: bytes, content_type: str = None) -> str:
        self._blobs[key] = bytes(data)
        if content_type:
            self._content_types[key] = content_type
        return key

    async def fetch(self, blob_ref: str) -> bytes:
        try:
            return self._blobs[blob_ref]
        except KeyError:
            raise NotFound(f"Blob {blob_ref} not found")

    async def delete(self, blob_ref: str) -> None:
        self._blobs.pop(blob_ref, None)
        self._content_types.pop(blob_ref, None)

    def __contains__(self, blob_ref: str) -> bool:
        return blob_ref in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)
