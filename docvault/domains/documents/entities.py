import copy
import enum
import uuid
from datetime import datetime
from typing import Iterable, Optional, Set

from docvault.core.errors import InvalidState

ALLOWED_FILE_TYPES = ("pdf", "docx", "pptx")


class DocumentCategory(str, enum.Enum):
    CMCT = "CMCT"
    FI = "FI"
    QM = "QM"

    @property
    def label(self) -> str:
        return f"SAP {self.value}"


class Document:
    """Сущность документа домена Documents"""
    
    def __init__(
        self,
        id: uuid.UUID,
        name: str,
        file_type: str,
        size_bytes: int,
        category: DocumentCategory,
        uploader_id: uuid.UUID,
        uploader_name: str,
        blob_ref: str,
        access_user_ids: Optional[Iterable[uuid.UUID]] = None,
        tags: Optional[Iterable[str]] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        archived_at: Optional[datetime] = None,
        version: int = 1
    ):
        self.id = id
        self.name = name
        self.file_type = file_type
        self.size_bytes = size_bytes
        self.category = DocumentCategory(category)
        self.uploader_id = uploader_id
        self.uploader_name = uploader_name
        self.blob_ref = blob_ref
        # владелец имеет доступ неявно и в списке не хранится
        self.access_user_ids: Set[uuid.UUID] = set(access_user_ids or ()) - {uploader_id}
        self.tags: Set[str] = set(tags or ())
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or self.created_at
        self.archived_at = archived_at
        self.version = version
    
    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None
    
    def is_owner(self, user_id: uuid.UUID) -> bool:
        """Проверка является ли пользователь владельцем"""
        return user_id == self.uploader_id
    
    def has_access(self, user_id: uuid.UUID) -> bool:
        """Владелец или пользователь из списка доступа"""
        return self.is_owner(user_id) or user_id in self.access_user_ids
    
    def archive(self, at: Optional[datetime] = None) -> None:
        """Перевод документа в архив"""
        if self.is_archived:
            raise InvalidState("Document is already archived")
        at = at or datetime.utcnow()
        self.archived_at = max(at, self.created_at)
        self.updated_at = at
    
    def restore(self, at: Optional[datetime] = None) -> None:
        """Восстановление документа из архива"""
        if not self.is_archived:
            raise InvalidState("Document is not archived")
        self.archived_at = None
        self.updated_at = at or datetime.utcnow()
    
    def ensure_deletable(self) -> None:
        if not self.is_archived:
            raise InvalidState("Document must be archived before it can be deleted")
    
    def grant_access(self, user_ids: Iterable[uuid.UUID], at: Optional[datetime] = None) -> Set[uuid.UUID]:
        """Добавление пользователей в список доступа, возвращает новых"""
        added = set(user_ids) - self.access_user_ids - {self.uploader_id}
        if added:
            self.access_user_ids |= added
            self.updated_at = at or datetime.utcnow()
        return added
    
    def copy(self) -> "Document":
        return copy.deepcopy(self)
    
    @classmethod
    def create_document(
        cls,
        name: str,
        file_type: str,
        size_bytes: int,
        category: DocumentCategory,
        uploader_id: uuid.UUID,
        uploader_name: str,
        blob_ref: str,
        access_user_ids: Iterable[uuid.UUID] = (),
        tags: Iterable[str] = ()
    ) -> "Document":
        """Создание нового документа"""
        return cls(
            id=uuid.uuid4(),
            name=name,
            file_type=file_type,
            size_bytes=size_bytes,
            category=category,
            uploader_id=uploader_id,
            uploader_name=uploader_name,
            blob_ref=blob_ref,
            access_user_ids=access_user_ids,
            tags=tags
        )
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, Document):
            return False
        return self.id == other.id
    
    def __hash__(self) -> int:
        return hash(self.id)
    
    def __repr__(self) -> str:
        return f"Document(id={self.id}, name={self.name}, archived={self.is_archived})"
