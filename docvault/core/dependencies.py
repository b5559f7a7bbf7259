from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine

from docvault.core.config import Settings
from docvault.core.db import create_engine, create_session_factory, create_schema
from docvault.db.repositories import (
    ActivityRepository, DocumentRepository, SessionRepository, UserRepository,
    InMemoryActivityRepository, InMemoryDocumentRepository,
    InMemorySessionRepository, InMemoryUserRepository
)
from docvault.domains.activity.services import ActivityLog
from docvault.domains.documents.services import DocumentService
from docvault.domains.identity.services import IdentityService
from docvault.storage import BlobStorage, build_blob_storage


@dataclass
class Services:
    """Сервисы приложения с общими хранилищами"""
    settings: Settings
    identity: IdentityService
    documents: DocumentService
    activity_log: ActivityLog
    blob_storage: BlobStorage
    engine: Optional[AsyncEngine] = None

    async def prepare(self) -> None:
        """Создание схемы БД при необходимости"""
        if self.engine is not None and self.settings.create_schema:
            await create_schema(self.engine)

    async def close(self) -> None:
        await self.blob_storage.close()
        if self.engine is not None:
            await self.engine.dispose()


def build_services(settings: Settings, blob_storage: Optional[BlobStorage] = None) -> Services:
    """Сборка сервисов по настройкам store_backend и storage_backend"""
    backend = settings.store_backend.lower()
    engine = None

    if backend == "sql":
        engine = create_engine(settings)
        session_factory = create_session_factory(engine)
        user_store = UserRepository(session_factory)
        session_store = SessionRepository(session_factory)
        document_store = DocumentRepository(session_factory, max_attempts=settings.max_update_attempts)
        activity_store = ActivityRepository(session_factory)
    elif backend == "memory":
        user_store = InMemoryUserRepository()
        session_store = InMemorySessionRepository()
        document_store = InMemoryDocumentRepository()
        activity_store = InMemoryActivityRepository()
    else:
        raise ValueError(f"Unsupported store backend: {settings.store_backend}")

    blob_storage = blob_storage or build_blob_storage(settings)
    activity_log = ActivityLog(activity_store, document_store, max_limit=settings.max_activity_limit)

    return Services(
        settings=settings,
        identity=IdentityService(user_store, session_store, settings),
        documents=DocumentService(document_store, user_store, activity_log, blob_storage, settings),
        activity_log=activity_log,
        blob_storage=blob_storage,
        engine=engine
    )


def get_services(request: Request) -> Services:
    """Зависимость FastAPI: сервисы текущего приложения"""
    return request.app.state.services


def get_identity_service(request: Request) -> IdentityService:
    return get_services(request).identity


def get_document_service(request: Request) -> DocumentService:
    return get_services(request).documents


def get_activity_log(request: Request) -> ActivityLog:
    return get_services(request).activity_log
