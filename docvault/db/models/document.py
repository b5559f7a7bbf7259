from datetime import datetime

from sqlalchemy import Column, String, Integer, BigInteger, DateTime, ForeignKey, Index, JSON, Uuid

from docvault.core.db import Base
from docvault.db.base import BaseModel


class Document(BaseModel):
    __tablename__ = "documents"
    
    name = Column(String(255), nullable=False)
    file_type = Column(String(16), nullable=False)
    size_bytes = Column(BigInteger, nullable=False)
    category = Column(String(16), nullable=False, index=True)
    uploader_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    uploader_name = Column(String(255), nullable=False)
    blob_ref = Column(String(1024), nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    archived_at = Column(DateTime, nullable=True)
    # номер версии для сравнения с обменом при изменениях
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index("idx_documents_uploader_archived", "uploader_id", "archived_at"),
    )


class DocumentAccess(Base):
    __tablename__ = "document_access"

    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Uuid, ForeignKey("users.id"), primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
