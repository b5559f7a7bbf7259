import uuid
from datetime import datetime
from typing import Collection, List, Optional

from docvault.domains.activity.entities import Activity


class ActivityStore:
    """Контракт журнала действий, только добавление и чтение"""

    async def append(self, activity: Activity) -> None:
        raise NotImplementedError("Subclasses must implement append")

    async def list(
        self,
        limit: int,
        document_ids: Optional[Collection[uuid.UUID]] = None,
        user_id: Optional[uuid.UUID] = None,
        document_id: Optional[uuid.UUID] = None
    ) -> List[Activity]:
        """Записи от новых к старым"""
        raise NotImplementedError("Subclasses must implement list")

    async def count_since(
        self,
        since: datetime,
        document_ids: Optional[Collection[uuid.UUID]] = None
    ) -> int:
        raise NotImplementedError("Subclasses must implement count_since")
