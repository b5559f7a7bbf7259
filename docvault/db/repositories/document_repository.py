import logging
import uuid
from collections import defaultdict
from typing import Dict, List, Optional, Set

from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docvault.core.errors import ConflictError, NotFound
from docvault.db.models.document import Document as DocumentModel, DocumentAccess as DocumentAccessModel
from docvault.domains.documents.entities import Document, DocumentCategory
from docvault.domains.documents.store import DocumentMutation, DocumentStore

logger = logging.getLogger(__name__)


class DocumentRepository(DocumentStore):
    """Репозиторий документов.

    Изменения фиксируются условным UPDATE по колонке version. Если запись
    изменилась между чтением и записью, состояние перечитывается и
    изменение применяется повторно, не более max_attempts раз.
    """

    def __init__(self, session_factory: async_sessionmaker, max_attempts: int = 5):
        self.session_factory = session_factory
        self.max_attempts = max_attempts

    async def create(self, document: Document) -> Document:
        """Создание документа вместе со списком доступа"""
        async with self.session_factory() as session:
            session.add(DocumentModel(
                id=document.id,
                name=document.name,
                file_type=document.file_type,
                size_bytes=document.size_bytes,
                category=document.category.value,
                uploader_id=document.uploader_id,
                uploader_name=document.uploader_name,
                blob_ref=document.blob_ref,
                tags=sorted(document.tags),
                archived_at=document.archived_at,
                version=document.version,
                created_at=document.created_at,
                updated_at=document.updated_at
            ))
            # строка документа должна появиться раньше строк доступа
            await session.flush()
            session.add_all(self._access_rows(document.id, document.access_user_ids))
            await session.commit()

        return document.copy()

    async def get_by_id(self, document_id: uuid.UUID) -> Optional[Document]:
        """Получение документа по id"""
        async with self.session_factory() as session:
            return await self._load(session, document_id)

    async def list(
        self,
        archived: bool,
        visible_to: Optional[uuid.UUID] = None,
        category: Optional[DocumentCategory] = None
    ) -> List[Document]:
        stmt = self._filtered(select(DocumentModel), archived, visible_to)
        if category is not None:
            stmt = stmt.where(DocumentModel.category == DocumentCategory(category).value)

        async with self.session_factory() as session:
            models = (await session.execute(stmt)).scalars().all()
            access = await self._access_map(session, [model.id for model in models])
            return [self._to_domain(model, access.get(model.id, ())) for model in models]

    async def list_visible_ids(self, user_id: uuid.UUID) -> Set[uuid.UUID]:
        """Id всех документов, загруженных пользователем или открытых ему"""
        stmt = select(DocumentModel.id).where(self._visibility(user_id))

        async with self.session_factory() as session:
            return set((await session.execute(stmt)).scalars().all())

    async def count(self, archived: bool, visible_to: Optional[uuid.UUID] = None) -> int:
        stmt = self._filtered(select(func.count()).select_from(DocumentModel), archived, visible_to)

        async with self.session_factory() as session:
            return (await session.execute(stmt)).scalar_one()

    async def update(self, document_id: uuid.UUID, mutate: DocumentMutation) -> Document:
        for attempt in range(1, self.max_attempts + 1):
            async with self.session_factory() as session:
                document = await self._load(session, document_id)
                if not document:
                    raise NotFound("Document not found")

                expected = document.version
                previous_access = set(document.access_user_ids)
                mutate(document)

                result = await session.execute(
                    update(DocumentModel)
                    .where(DocumentModel.id == document_id, DocumentModel.version == expected)
                    .values(
                        name=document.name,
                        tags=sorted(document.tags),
                        archived_at=document.archived_at,
                        updated_at=document.updated_at,
                        version=expected + 1
                    )
                )
                if result.rowcount != 1:
                    await session.rollback()
                    logger.info(f"Document {document_id} changed concurrently, retrying update (attempt {attempt})")
                    continue

                revoked = previous_access - document.access_user_ids
                if revoked:
                    await session.execute(
                        delete(DocumentAccessModel).where(
                            DocumentAccessModel.document_id == document_id,
                            DocumentAccessModel.user_id.in_(list(revoked))
                        )
                    )
                session.add_all(self._access_rows(document_id, document.access_user_ids - previous_access))
                await session.commit()

                document.version = expected + 1
                return document

        logger.warning(f"Giving up update of document {document_id} after {self.max_attempts} attempts")
        raise ConflictError("Document was modified concurrently, please retry")

    async def delete(self, document_id: uuid.UUID, check: DocumentMutation) -> Document:
        for attempt in range(1, self.max_attempts + 1):
            async with self.session_factory() as session:
                document = await self._load(session, document_id)
                if not document:
                    raise NotFound("Document not found")

                check(document)

                await session.execute(
                    delete(DocumentAccessModel).where(DocumentAccessModel.document_id == document_id)
                )
                result = await session.execute(
                    delete(DocumentModel).where(
                        DocumentModel.id == document_id,
                        DocumentModel.version == document.version
                    )
                )
                if result.rowcount != 1:
                    await session.rollback()
                    logger.info(f"Document {document_id} changed concurrently, retrying delete (attempt {attempt})")
                    continue

                await session.commit()
                return document

        logger.warning(f"Giving up delete of document {document_id} after {self.max_attempts} attempts")
        raise ConflictError("Document was modified concurrently, please retry")

    async def _load(self, session: AsyncSession, document_id: uuid.UUID) -> Optional[Document]:
        model = await session.get(DocumentModel, document_id)
        if not model:
            return None
        access = await self._access_map(session, [document_id])
        return self._to_domain(model, access.get(document_id, ()))

    @staticmethod
    async def _access_map(session: AsyncSession, document_ids: List[uuid.UUID]) -> Dict[uuid.UUID, Set[uuid.UUID]]:
        access: Dict[uuid.UUID, Set[uuid.UUID]] = defaultdict(set)
        if not document_ids:
            return access

        result = await session.execute(
            select(DocumentAccessModel.document_id, DocumentAccessModel.user_id)
            .where(DocumentAccessModel.document_id.in_(document_ids))
        )
        for document_id, user_id in result.all():
            access[document_id].add(user_id)
        return access

    @staticmethod
    def _visibility(user_id: uuid.UUID):
        shared = select(DocumentAccessModel.document_id).where(DocumentAccessModel.user_id == user_id)
        return or_(DocumentModel.uploader_id == user_id, DocumentModel.id.in_(shared))

    def _filtered(self, stmt, archived: bool, visible_to: Optional[uuid.UUID]):
        if archived:
            stmt = stmt.where(DocumentModel.archived_at.is_not(None))
        else:
            stmt = stmt.where(DocumentModel.archived_at.is_(None))
        if visible_to is not None:
            stmt = stmt.where(self._visibility(visible_to))
        return stmt

    @staticmethod
    def _access_rows(document_id: uuid.UUID, user_ids: Set[uuid.UUID]) -> List[DocumentAccessModel]:
        return [DocumentAccessModel(document_id=document_id, user_id=user_id) for user_id in sorted(user_ids, key=str)]

    @staticmethod
    def _to_domain(model: DocumentModel, access_user_ids) -> Document:
        """Преобразование модели БД в доменную сущность"""
        return Document(
            id=model.id,
            name=model.name,
            file_type=model.file_type,
            size_bytes=model.size_bytes,
            category=DocumentCategory(model.category),
            uploader_id=model.uploader_id,
            uploader_name=model.uploader_name,
            blob_ref=model.blob_ref,
            access_user_ids=access_user_ids,
            tags=model.tags or [],
            created_at=model.created_at,
            updated_at=model.updated_at,
            archived_at=model.archived_at,
            version=model.version
        )
