from pydantic import BaseModel, ConfigDict
from typing import List
from datetime import datetime
import uuid

from docvault.domains.activity.entities import ActivityType


class ActivityResponse(BaseModel):
    """Схема записи журнала действий"""
    id: uuid.UUID
    type: ActivityType
    document_id: uuid.UUID
    document_name: str
    user_id: uuid.UUID
    user_name: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class ActivityListResponse(BaseModel):
    activities: List[ActivityResponse]
