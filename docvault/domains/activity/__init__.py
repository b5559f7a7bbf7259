from docvault.domains.activity.entities import Activity, ActivityType
from docvault.domains.activity.schemas import ActivityResponse, ActivityListResponse
from docvault.domains.activity.services import ActivityLog

__all__ = [
    "Activity", "ActivityType",
    "ActivityResponse", "ActivityListResponse",
    "ActivityLog"
]
