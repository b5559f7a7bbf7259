from docvault.domains.documents.entities import Document, DocumentCategory, ALLOWED_FILE_TYPES
from docvault.domains.documents.access import Operation, is_allowed, ensure_allowed, can_view, can_modify
from docvault.domains.documents.schemas import (
    DocumentResponse, DocumentListResponse, DocumentShareRequest,
    AccessHandleResponse, DocumentStatsResponse
)

__all__ = [
    "Document", "DocumentCategory", "ALLOWED_FILE_TYPES",
    "Operation", "is_allowed", "ensure_allowed", "can_view", "can_modify",
    "DocumentResponse", "DocumentListResponse", "DocumentShareRequest",
    "AccessHandleResponse", "DocumentStatsResponse"
]
