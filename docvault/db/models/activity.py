import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, Index, Uuid

from docvault.core.db import Base


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    type = Column(String(20), nullable=False)
    # без внешнего ключа: запись переживает удаление документа
    document_id = Column(Uuid, nullable=False, index=True)
    document_name = Column(String(255), nullable=False)
    user_id = Column(Uuid, nullable=False, index=True)
    user_name = Column(String(255), nullable=False)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_activities_timestamp_desc", timestamp.desc()),
    )
