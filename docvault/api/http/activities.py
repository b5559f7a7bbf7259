from fastapi import APIRouter, Depends, Query
from typing import Optional
import uuid

from docvault.api.http.auth import get_current_user
from docvault.core.dependencies import get_activity_log
from docvault.domains.activity.schemas import ActivityListResponse, ActivityResponse
from docvault.domains.activity.services import ActivityLog
from docvault.domains.identity.entities import User

router = APIRouter(prefix="/activities", tags=["activities"])


@router.get("", response_model=ActivityListResponse)
async def list_activities(
    user_id: Optional[uuid.UUID] = Query(None),
    document_id: Optional[uuid.UUID] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    current_user: User = Depends(get_current_user),
    activity_log: ActivityLog = Depends(get_activity_log)
):
    """Последние действия, видимые пользователю"""
    activities = await activity_log.list_activities(
        current_user, user_id=user_id, document_id=document_id, limit=limit
    )
    return ActivityListResponse(activities=[ActivityResponse.model_validate(a) for a in activities])
