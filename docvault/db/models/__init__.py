from docvault.db.models.user import User
from docvault.db.models.document import Document, DocumentAccess
from docvault.db.models.activity import Activity
from docvault.db.models.session import Session

__all__ = [
    "User",
    "Document",
    "DocumentAccess",
    "Activity",
    "Session"
]
