from dataclasses import dataclass
from datetime import datetime, timedelta

from docvault.core.config import Settings
from docvault.core.security import create_file_token


@dataclass(frozen=True)
class AccessHandle:
    """Временная ссылка на содержимое документа"""
    url: str
    expires_at: datetime


class BlobStorage:
    """Базовый адаптер файлового хранилища.

    Ошибки ввода-вывода адаптеры сообщают через StorageFailure,
    отсутствующий blob при чтении через NotFound.
    """

    async def upload(self, key: str, data: bytes, content_type: str = None) -> str:
        """Сохранение байтов, возвращает ссылку на blob"""
        raise NotImplementedError("Subclasses must implement upload")

    async def fetch(self, blob_ref: str) -> bytes:
        raise NotImplementedError("Subclasses must implement fetch")

    async def delete(self, blob_ref: str) -> None:
        """Удаление blob; отсутствие blob не считается ошибкой"""
        raise NotImplementedError("Subclasses must implement delete")

    async def issue_url(self, blob_ref: str, ttl: timedelta, disposition: str = "inline") -> AccessHandle:
        """Временная ссылка; disposition: inline для просмотра, attachment для скачивания"""
        raise NotImplementedError("Subclasses must implement issue_url")

    async def close(self) -> None:
        pass


class SignedUrlStorage(BlobStorage):
    """Хранилища без собственных ссылок отдают файлы через /files/{token}"""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def issue_url(self, blob_ref: str, ttl: timedelta, disposition: str = "inline") -> AccessHandle:
        expires_at = datetime.utcnow() + ttl
        token = create_file_token(blob_ref, expires_at, self.settings, disposition)
        base_url = self.settings.public_base_url.rstrip("/")
        return AccessHandle(url=f"{base_url}/files/{token}", expires_at=expires_at)
