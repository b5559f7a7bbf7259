from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict
import uuid
from datetime import datetime

from docvault.domains.documents.entities import Document, DocumentCategory


class DocumentResponse(BaseModel):
    """Схема для ответа с данными документа"""
    id: uuid.UUID
    name: str
    file_type: str
    size_bytes: int
    category: DocumentCategory
    uploader_id: uuid.UUID
    uploader_name: str
    access_user_ids: List[uuid.UUID]
    tags: List[str]
    created_at: datetime
    updated_at: datetime
    archived_at: Optional[datetime] = None
    is_archived: bool
    
    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_entity(cls, document: Document) -> "DocumentResponse":
        return cls(
            id=document.id,
            name=document.name,
            file_type=document.file_type,
            size_bytes=document.size_bytes,
            category=document.category,
            uploader_id=document.uploader_id,
            uploader_name=document.uploader_name,
            access_user_ids=sorted(document.access_user_ids, key=str),
            tags=sorted(document.tags),
            created_at=document.created_at,
            updated_at=document.updated_at,
            archived_at=document.archived_at,
            is_archived=document.is_archived
        )


class DocumentListResponse(BaseModel):
    """Схема для списка документов"""
    documents: List[DocumentResponse]
    total: int


class DocumentShareRequest(BaseModel):
    """Схема для запроса на предоставление доступа к документу"""
    user_ids: List[uuid.UUID] = Field(..., min_length=1)


class AccessHandleResponse(BaseModel):
    """Временная ссылка на файл документа"""
    url: str
    expires_at: datetime


class DocumentStatsResponse(BaseModel):
    """Схема для статистики документов"""
    active_documents: int
    archived_documents: int
    documents_by_category: Dict[str, int]
    active_users: int
    recent_activities: int
