import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Uuid

from docvault.core.db import Base


class BaseModel(Base):
    """Общие колонки для всех таблиц"""
    __abstract__ = True

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
