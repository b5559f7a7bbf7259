import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional, Set

from docvault.core.errors import AccessDenied
from docvault.domains.activity.entities import Activity, ActivityType
from docvault.domains.activity.store import ActivityStore
from docvault.domains.documents.entities import Document
from docvault.domains.documents.store import DocumentStore
from docvault.domains.identity.entities import User

logger = logging.getLogger(__name__)


class ActivityLog:
    """Журнал действий пользователей с документами"""
    
    def __init__(
        self,
        activity_store: ActivityStore,
        document_store: DocumentStore,
        max_limit: int = 50
    ):
        self.activity_store = activity_store
        self.document_store = document_store
        self.max_limit = max_limit
    
    async def record(self, activity_type: ActivityType, document: Document, user: User) -> Optional[Activity]:
        """Добавление записи; ошибки журнала не прерывают исходную операцию"""
        activity = Activity(
            type=ActivityType(activity_type),
            document_id=document.id,
            document_name=document.name,
            user_id=user.id,
            user_name=user.name
        )
        
        try:
            await self.activity_store.append(activity)
        except Exception:
            logger.exception(
                f"Failed to record {activity.type.value} activity for document {document.id} by user {user.id}"
            )
            return None
        
        return activity
    
    async def list_activities(
        self,
        viewer: User,
        user_id: Optional[uuid.UUID] = None,
        document_id: Optional[uuid.UUID] = None,
        limit: Optional[int] = None
    ) -> List[Activity]:
        """Последние записи, видимые пользователю, от новых к старым"""
        limit = min(max(limit or self.max_limit, 1), self.max_limit)
        
        document_ids = await self._visible_document_ids(viewer)
        if document_ids is not None:
            if not document_ids:
                return []
            if document_id is not None and document_id not in document_ids:
                return []
        
        return await self.activity_store.list(
            limit,
            document_ids=document_ids,
            user_id=user_id,
            document_id=document_id
        )
    
    async def count_recent(self, viewer: User, period: timedelta = timedelta(hours=24)) -> int:
        """Количество видимых записей за период"""
        document_ids = await self._visible_document_ids(viewer)
        if document_ids is not None and not document_ids:
            return 0
        return await self.activity_store.count_since(datetime.utcnow() - period, document_ids)
    
    async def _visible_document_ids(self, viewer: User) -> Optional[Set[uuid.UUID]]:
        """None означает отсутствие ограничений (администратор)"""
        if not viewer.is_active:
            raise AccessDenied("Inactive users cannot read the activity log")
        
        if viewer.is_admin:
            return None
        
        return await self.document_store.list_visible_ids(viewer.id)
