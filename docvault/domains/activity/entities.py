import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime


class ActivityType(str, enum.Enum):
    UPLOAD = "upload"
    VIEW = "view"
    DOWNLOAD = "download"
    ARCHIVE = "archive"
    RESTORE = "restore"
    DELETE = "delete"
    SHARE = "share"


@dataclass(frozen=True)
class Activity:
    """Запись журнала действий.

    Имена документа и пользователя сохраняются на момент действия и
    не обновляются при последующих переименованиях.
    """
    type: ActivityType
    document_id: uuid.UUID
    document_name: str
    user_id: uuid.UUID
    user_name: str
    timestamp: datetime = field(default_factory=datetime.utcnow)
    id: uuid.UUID = field(default_factory=uuid.uuid4)
