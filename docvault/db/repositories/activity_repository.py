import uuid
from datetime import datetime
from typing import Collection, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import async_sessionmaker

from docvault.db.models.activity import Activity as ActivityModel
from docvault.domains.activity.entities import Activity, ActivityType
from docvault.domains.activity.store import ActivityStore


class ActivityRepository(ActivityStore):
    """Репозиторий журнала действий"""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def append(self, activity: Activity) -> None:
        async with self.session_factory() as session:
            session.add(ActivityModel(
                id=activity.id,
                type=activity.type.value,
                document_id=activity.document_id,
                document_name=activity.document_name,
                user_id=activity.user_id,
                user_name=activity.user_name,
                timestamp=activity.timestamp
            ))
            await session.commit()

    async def list(
        self,
        limit: int,
        document_ids: Optional[Collection[uuid.UUID]] = None,
        user_id: Optional[uuid.UUID] = None,
        document_id: Optional[uuid.UUID] = None
    ) -> List[Activity]:
        stmt = select(ActivityModel)
        if document_ids is not None:
            stmt = stmt.where(ActivityModel.document_id.in_(list(document_ids)))
        if user_id:
            stmt = stmt.where(ActivityModel.user_id == user_id)
        if document_id:
            stmt = stmt.where(ActivityModel.document_id == document_id)
        stmt = stmt.order_by(ActivityModel.timestamp.desc()).limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_domain(model) for model in result.scalars().all()]

    async def count_since(
        self,
        since: datetime,
        document_ids: Optional[Collection[uuid.UUID]] = None
    ) -> int:
        stmt = select(func.count()).select_from(ActivityModel).where(ActivityModel.timestamp >= since)
        if document_ids is not None:
            stmt = stmt.where(ActivityModel.document_id.in_(list(document_ids)))

        async with self.session_factory() as session:
            return (await session.execute(stmt)).scalar_one()

    @staticmethod
    def _to_domain(model: ActivityModel) -> Activity:
        return Activity(
            id=model.id,
            type=ActivityType(model.type),
            document_id=model.document_id,
            document_name=model.document_name,
            user_id=model.user_id,
            user_name=model.user_name,
            timestamp=model.timestamp
        )
