from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from typing import Optional, List
import uuid

from docvault.api.http.auth import get_current_user
from docvault.core.dependencies import get_document_service
from docvault.domains.documents.schemas import (
    AccessHandleResponse, DocumentListResponse, DocumentResponse,
    DocumentShareRequest, DocumentStatsResponse
)
from docvault.domains.documents.services import DocumentService
from docvault.domains.identity.entities import User

router = APIRouter(prefix="/documents", tags=["documents"])


def _list_response(documents) -> DocumentListResponse:
    return DocumentListResponse(
        documents=[DocumentResponse.from_entity(document) for document in documents],
        total=len(documents)
    )


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    category: Optional[str] = Query(None),
    file_type: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    document_service: DocumentService = Depends(get_document_service)
):
    """Активные документы, доступные пользователю"""
    documents = await document_service.list_documents(
        current_user, category=category, file_type=file_type, search=search, sort=sort
    )
    return _list_response(documents)


@router.get("/archived", response_model=DocumentListResponse)
async def list_archived_documents(
    category: Optional[str] = Query(None),
    file_type: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    document_service: DocumentService = Depends(get_document_service)
):
    """Архивные документы, доступные пользователю"""
    documents = await document_service.list_archived_documents(
        current_user, category=category, file_type=file_type, search=search, sort=sort
    )
    return _list_response(documents)


@router.get("/stats", response_model=DocumentStatsResponse)
async def get_document_stats(
    current_user: User = Depends(get_current_user),
    document_service: DocumentService = Depends(get_document_service)
):
    """Статистика для панели"""
    return DocumentStatsResponse(**await document_service.get_stats(current_user))


@router.post("/upload", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    category: str = Form(...),
    access_user_ids: List[uuid.UUID] = Form([]),
    tags: List[str] = Form([]),
    current_user: User = Depends(get_current_user),
    document_service: DocumentService = Depends(get_document_service)
):
    """Загрузка нового документа"""
    data = await file.read()
    document = await document_service.upload_document(
        current_user,
        filename=file.filename or "",
        data=data,
        category=category,
        access_user_ids=access_user_ids,
        tags=tags,
        content_type=file.content_type
    )
    return DocumentResponse.from_entity(document)


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    document_service: DocumentService = Depends(get_document_service)
):
    """Получение документа"""
    document = await document_service.get_document(current_user, document_id)
    return DocumentResponse.from_entity(document)


@router.patch("/{document_id}/archive", response_model=DocumentResponse)
async def archive_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    document_service: DocumentService = Depends(get_document_service)
):
    """Перевод документа в архив"""
    document = await document_service.archive_document(current_user, document_id)
    return DocumentResponse.from_entity(document)


@router.patch("/{document_id}/restore", response_model=DocumentResponse)
async def restore_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    document_service: DocumentService = Depends(get_document_service)
):
    """Восстановление документа из архива"""
    document = await document_service.restore_document(current_user, document_id)
    return DocumentResponse.from_entity(document)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    document_service: DocumentService = Depends(get_document_service)
):
    """Удаление архивного документа"""
    await document_service.delete_document(current_user, document_id)


@router.post("/{document_id}/share", response_model=DocumentResponse)
async def share_document(
    document_id: uuid.UUID,
    share_data: DocumentShareRequest,
    current_user: User = Depends(get_current_user),
    document_service: DocumentService = Depends(get_document_service)
):
    """Предоставление доступа к документу"""
    document = await document_service.share_document(current_user, document_id, share_data.user_ids)
    return DocumentResponse.from_entity(document)


@router.get("/{document_id}/view", response_model=AccessHandleResponse)
async def view_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    document_service: DocumentService = Depends(get_document_service)
):
    """Временная ссылка для просмотра"""
    handle = await document_service.view_document(current_user, document_id)
    return AccessHandleResponse(url=handle.url, expires_at=handle.expires_at)


@router.get("/{document_id}/download", response_model=AccessHandleResponse)
async def download_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    document_service: DocumentService = Depends(get_document_service)
):
    """Временная ссылка для скачивания"""
    handle = await document_service.download_document(current_user, document_id)
    return AccessHandleResponse(url=handle.url, expires_at=handle.expires_at)
