from docvault.db.repositories.user_repository import UserRepository
from docvault.db.repositories.session_repository import SessionRepository
from docvault.db.repositories.document_repository import DocumentRepository
from docvault.db.repositories.activity_repository import ActivityRepository
from docvault.db.repositories.memory import (
    InMemoryActivityRepository, InMemoryDocumentRepository,
    InMemorySessionRepository, InMemoryUserRepository
)

__all__ = [
    "UserRepository",
    "SessionRepository",
    "DocumentRepository",
    "ActivityRepository",
    "InMemoryUserRepository",
    "InMemorySessionRepository",
    "InMemoryDocumentRepository",
    "InMemoryActivityRepository"
]
