from docvault.core.config import Settings
from docvault.storage.azure import AzureBlobStorage
from docvault.storage.base import AccessHandle, BlobStorage
from docvault.storage.local import LocalBlobStorage
from docvault.storage.memory import InMemoryBlobStorage


def build_blob_storage(settings: Settings) -> BlobStorage:
    """Выбор адаптера по настройке storage_backend"""
    backend = settings.storage_backend.lower()

    if backend == "azure":
        return AzureBlobStorage(settings)
    if backend == "local":
        return LocalBlobStorage(settings)
    if backend == "memory":
        return InMemoryBlobStorage(settings)

    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")


__all__ = [
    "AccessHandle",
    "BlobStorage",
    "AzureBlobStorage",
    "LocalBlobStorage",
    "InMemoryBlobStorage",
    "build_blob_storage"
]
