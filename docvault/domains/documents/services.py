import asyncio
import logging
import re
import time
import uuid
from collections import Counter
from datetime import timedelta
from typing import Any, Awaitable, Dict, Iterable, List, Optional, TypeVar

from docvault.core.config import Settings
from docvault.core.errors import AccessDenied, NotFound, StorageFailure, ValidationError
from docvault.domains.activity.entities import ActivityType
from docvault.domains.activity.services import ActivityLog
from docvault.domains.documents.access import Operation, can_view, ensure_allowed
from docvault.domains.documents.entities import ALLOWED_FILE_TYPES, Document, DocumentCategory
from docvault.domains.documents.store import DocumentStore
from docvault.domains.identity.entities import User
from docvault.domains.identity.store import UserStore
from docvault.storage.base import AccessHandle, BlobStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")

SORT_OPTIONS = ("newest", "oldest", "name", "size")


class DocumentService:
    """Жизненный цикл документов: загрузка, архив, удаление, доступ"""

    def __init__(
        self,
        document_store: DocumentStore,
        user_store: UserStore,
        activity_log: ActivityLog,
        blob_storage: BlobStorage,
        settings: Settings
    ):
        self.document_store = document_store
        self.user_store = user_store
        self.activity_log = activity_log
        self.blob_storage = blob_storage
        self.settings = settings

    async def upload_document(
        self,
        actor: User,
        filename: str,
        data: bytes,
        category: Any,
        access_user_ids: Iterable[uuid.UUID] = (),
        tags: Iterable[str] = (),
        content_type: Optional[str] = None
    ) -> Document:
        """Загрузка файла и создание документа"""
        ensure_allowed(actor, Operation.UPLOAD)

        file_type = self._validate_file(filename, data)
        category = self._parse_category(category)
        access_ids = set(access_user_ids) - {actor.id}
        await self._ensure_users_exist(access_ids)

        key = self._blob_key(actor.id, filename)
        blob_ref = await self._storage_call(
            self.blob_storage.upload(key, data, content_type),
            f"upload of {key}"
        )

        document = Document.create_document(
            name=filename,
            file_type=file_type,
            size_bytes=len(data),
            category=category,
            uploader_id=actor.id,
            uploader_name=actor.name,
            blob_ref=blob_ref,
            access_user_ids=access_ids,
            tags=self._normalize_tags(tags)
        )

        try:
            created = await self.document_store.create(document)
        except Exception:
            # не оставляем файл без записи о документе
            logger.error(f"Failed to create document record for {blob_ref}, removing stored file")
            await self._discard_blob(blob_ref)
            raise

        logger.info(f"User {actor.id} uploaded document {created.id} ({created.name})")
        await self.activity_log.record(ActivityType.UPLOAD, created, actor)
        return created

    async def get_document(self, actor: User, document_id: uuid.UUID) -> Document:
        """Получение документа с проверкой права на просмотр"""
        document = await self._get_document(document_id)
        ensure_allowed(actor, Operation.VIEW, document)
        return document

    async def archive_document(self, actor: User, document_id: uuid.UUID) -> Document:
        """Перевод документа в архив"""
        def mutate(document: Document) -> None:
            ensure_allowed(actor, Operation.ARCHIVE, document)
            document.archive()

        document = await self.document_store.update(document_id, mutate)

        logger.info(f"User {actor.id} archived document {document_id}")
        await self.activity_log.record(ActivityType.ARCHIVE, document, actor)
        return document

    async def restore_document(self, actor: User, document_id: uuid.UUID) -> Document:
        """Восстановление документа из архива"""
        def mutate(document: Document) -> None:
            ensure_allowed(actor, Operation.RESTORE, document)
            document.restore()

        document = await self.document_store.update(document_id, mutate)

        logger.info(f"User {actor.id} restored document {document_id}")
        await self.activity_log.record(ActivityType.RESTORE, document, actor)
        return document

    async def delete_document(self, actor: User, document_id: uuid.UUID) -> Document:
        """Окончательное удаление архивного документа"""
        def check(document: Document) -> None:
            ensure_allowed(actor, Operation.DELETE, document)
            document.ensure_deletable()

        document = await self.document_store.delete(document_id, check)

        # запись уже удалена, ошибка хранилища не должна ее вернуть
        await self._discard_blob(document.blob_ref)

        logger.info(f"User {actor.id} deleted document {document_id} ({document.name})")
        await self.activity_log.record(ActivityType.DELETE, document, actor)
        return document

    async def share_document(
        self,
        actor: User,
        document_id: uuid.UUID,
        user_ids: Iterable[uuid.UUID]
    ) -> Document:
        """Предоставление доступа к документу"""
        user_ids = set(user_ids)
        if not user_ids:
            raise ValidationError("At least one user is required to share a document")

        current = await self._get_document(document_id)
        ensure_allowed(actor, Operation.SHARE, current)
        await self._ensure_users_exist(user_ids)

        added = set()

        def mutate(document: Document) -> None:
            ensure_allowed(actor, Operation.SHARE, document)
            added.clear()
            added.update(document.grant_access(user_ids))

        document = await self.document_store.update(document_id, mutate)

        logger.info(f"User {actor.id} shared document {document_id} with {len(added)} new user(s)")
        await self.activity_log.record(ActivityType.SHARE, document, actor)
        return document

    async def view_document(self, actor: User, document_id: uuid.UUID) -> AccessHandle:
        """Ссылка для просмотра"""
        return await self._issue_access(actor, document_id, Operation.VIEW, ActivityType.VIEW)

    async def download_document(self, actor: User, document_id: uuid.UUID) -> AccessHandle:
        """Ссылка для скачивания"""
        return await self._issue_access(actor, document_id, Operation.DOWNLOAD, ActivityType.DOWNLOAD)

    async def list_documents(
        self,
        actor: User,
        category: Any = None,
        file_type: Optional[str] = None,
        search: Optional[str] = None,
        sort: Optional[str] = None
    ) -> List[Document]:
        """Активные документы, доступные пользователю"""
        return await self._list(actor, False, category, file_type, search, sort)

    async def list_archived_documents(
        self,
        actor: User,
        category: Any = None,
        file_type: Optional[str] = None,
        search: Optional[str] = None,
        sort: Optional[str] = None
    ) -> List[Document]:
        """Архивные документы, доступные пользователю"""
        return await self._list(actor, True, category, file_type, search, sort)

    async def get_stats(self, actor: User) -> Dict[str, Any]:
        """Сводка для панели: документы, архив, пользователи, активность"""
        active = await self._list(actor, False)
        visible_to = None if actor.is_admin else actor.id
        archived_count = await self.document_store.count(True, visible_to=visible_to)

        by_category = Counter(document.category for document in active)

        return {
            "active_documents": len(active),
            "archived_documents": archived_count,
            "documents_by_category": {category.value: by_category.get(category, 0) for category in DocumentCategory},
            "active_users": await self.user_store.count(),
            "recent_activities": await self.activity_log.count_recent(actor)
        }

    async def _list(
        self,
        actor: User,
        archived: bool,
        category: Any = None,
        file_type: Optional[str] = None,
        search: Optional[str] = None,
        sort: Optional[str] = None
    ) -> List[Document]:
        if not actor.is_active:
            raise AccessDenied("Inactive users cannot list documents")

        if category is not None:
            category = self._parse_category(category)
        if sort is not None and sort not in SORT_OPTIONS:
            raise ValidationError(f"Unsupported sort order: {sort}")

        visible_to = None if actor.is_admin else actor.id
        documents = await self.document_store.list(archived, visible_to=visible_to, category=category)
        documents = [document for document in documents if can_view(actor, document)]

        if file_type:
            file_type = file_type.lower().lstrip(".")
            documents = [document for document in documents if document.file_type == file_type]

        if search and search.strip():
            needle = search.strip().lower()
            documents = [
                document for document in documents
                if needle in document.name.lower() or any(needle in tag.lower() for tag in document.tags)
            ]

        return self._sort(documents, archived, sort)

    @staticmethod
    def _sort(documents: List[Document], archived: bool, sort: Optional[str]) -> List[Document]:
        if sort == "oldest":
            return sorted(documents, key=lambda d: d.created_at)
        if sort == "name":
            return sorted(documents, key=lambda d: d.name.lower())
        if sort == "size":
            return sorted(documents, key=lambda d: d.size_bytes, reverse=True)
        if sort is None and archived:
            return sorted(documents, key=lambda d: d.archived_at, reverse=True)
        return sorted(documents, key=lambda d: d.created_at, reverse=True)

    async def _issue_access(
        self,
        actor: User,
        document_id: uuid.UUID,
        operation: Operation,
        activity_type: ActivityType
    ) -> AccessHandle:
        document = await self._get_document(document_id)
        ensure_allowed(actor, operation, document)

        ttl = timedelta(seconds=self.settings.access_url_ttl_seconds)
        disposition = "attachment" if operation == Operation.DOWNLOAD else "inline"
        handle = await self._storage_call(
            self.blob_storage.issue_url(document.blob_ref, ttl, disposition=disposition),
            f"{operation.value} of document {document_id}"
        )

        await self.activity_log.record(activity_type, document, actor)
        return handle

    async def _get_document(self, document_id: uuid.UUID) -> Document:
        document = await self.document_store.get_by_id(document_id)
        if not document:
            raise NotFound("Document not found")
        return document

    async def _ensure_users_exist(self, user_ids: Iterable[uuid.UUID]) -> None:
        for user_id in user_ids:
            if not await self.user_store.get_by_id(user_id):
                raise NotFound(f"User {user_id} not found")

    async def _storage_call(self, call: Awaitable[T], action: str) -> T:
        """Вызов хранилища с таймаутом"""
        try:
            return await asyncio.wait_for(call, timeout=self.settings.storage_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"File storage timed out during {action}")
            raise StorageFailure(f"File storage timed out during {action}")

    async def _discard_blob(self, blob_ref: str) -> None:
        """Удаление файла без проброса ошибок хранилища"""
        try:
            await self._storage_call(self.blob_storage.delete(blob_ref), f"delete of {blob_ref}")
        except StorageFailure as e:
            logger.warning(f"Failed to delete {blob_ref} from file storage: {e}")

    def _validate_file(self, filename: str, data: bytes) -> str:
        """Проверка имени и размера файла, возвращает тип файла"""
        if not filename or not filename.strip():
            raise ValidationError("File name is required")

        file_type = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        if file_type not in ALLOWED_FILE_TYPES:
            raise ValidationError("Invalid file type. Please upload a PDF, DOCX, or PPTX file.")

        if not data:
            raise ValidationError("File is empty")

        if len(data) > self.settings.max_upload_bytes:
            raise ValidationError(f"File exceeds the maximum size of {self.settings.max_upload_bytes} bytes")

        return file_type

    @staticmethod
    def _parse_category(category: Any) -> DocumentCategory:
        if isinstance(category, DocumentCategory):
            return category

        value = str(category or "").strip().upper()
        if value.startswith("SAP "):
            value = value[4:]

        try:
            return DocumentCategory(value)
        except ValueError:
            raise ValidationError(f"Unknown document category: {category}")

    @staticmethod
    def _normalize_tags(tags: Iterable[str]) -> List[str]:
        return sorted({tag.strip() for tag in tags if tag and tag.strip()})

    @staticmethod
    def _blob_key(uploader_id: uuid.UUID, filename: str) -> str:
        sanitized = _UNSAFE_FILENAME_CHARS.sub("_", filename)
        timestamp = int(time.time() * 1000)
        return f"{uploader_id}/{timestamp}_{uuid.uuid4().hex[:8]}_{sanitized}"
