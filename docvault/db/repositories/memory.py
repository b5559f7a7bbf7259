import asyncio
import copy
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Collection, Dict, List, Optional, Set

from docvault.core.errors import NotFound, ValidationError
from docvault.domains.activity.entities import Activity
from docvault.domains.activity.store import ActivityStore
from docvault.domains.documents.entities import Document, DocumentCategory
from docvault.domains.documents.store import DocumentMutation, DocumentStore
from docvault.domains.identity.entities import AuthSession, User
from docvault.domains.identity.store import SessionStore, UserStore


class InMemoryUserRepository(UserStore):
    """Справочник пользователей в памяти процесса"""

    def __init__(self):
        self._users: Dict[uuid.UUID, User] = {}

    async def create(self, user: User) -> User:
        if await self.get_by_email(user.email):
            raise ValidationError("User with this email already exists")
        self._users[user.id] = copy.deepcopy(user)
        return copy.deepcopy(user)

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        user = self._users.get(user_id)
        return copy.deepcopy(user) if user else None

    async def get_by_email(self, email: str) -> Optional[User]:
        email = email.lower()
        for user in self._users.values():
            if user.email == email:
                return copy.deepcopy(user)
        return None

    async def update(self, user: User) -> User:
        if user.id not in self._users:
            raise NotFound("User not found")
        for other in self._users.values():
            if other.id != user.id and other.email == user.email:
                raise ValidationError("User with this email already exists")
        self._users[user.id] = copy.deepcopy(user)
        return copy.deepcopy(user)

    async def list(self, include_inactive: bool = False) -> List[User]:
        users = [user for user in self._users.values() if include_inactive or user.is_active]
        return [copy.deepcopy(user) for user in sorted(users, key=lambda u: (u.name, u.email))]

    async def count(self, include_inactive: bool = False) -> int:
        return sum(1 for user in self._users.values() if include_inactive or user.is_active)


class InMemorySessionRepository(SessionStore):
    """Сессии входа в памяти процесса"""

    def __init__(self):
        self._sessions: Dict[str, AuthSession] = {}

    async def create(self, session: AuthSession) -> AuthSession:
        self._sessions[session.token] = session
        return session

    async def get(self, token: str) -> Optional[AuthSession]:
        return self._sessions.get(token)

    async def delete(self, token: str) -> bool:
        return self._sessions.pop(token, None) is not None

    async def purge_expired(self, now: datetime) -> int:
        expired = [token for token, session in self._sessions.items() if session.is_expired(now)]
        for token in expired:
            del self._sessions[token]
        return len(expired)


class InMemoryDocumentRepository(DocumentStore):
    """Документы в памяти процесса.

    Изменения одного документа сериализуются блокировкой на документ,
    наружу отдаются только копии.
    """

    def __init__(self):
        self._documents: Dict[uuid.UUID, Document] = {}
        self._locks: Dict[uuid.UUID, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def create(self, document: Document) -> Document:
        if document.id in self._documents:
            raise ValidationError("Document already exists")
        self._documents[document.id] = document.copy()
        return document.copy()

    async def get_by_id(self, document_id: uuid.UUID) -> Optional[Document]:
        document = self._documents.get(document_id)
        return document.copy() if document else None

    async def list(
        self,
        archived: bool,
        visible_to: Optional[uuid.UUID] = None,
        category: Optional[DocumentCategory] = None
    ) -> List[Document]:
        return [
            document.copy() for document in self._select(archived, visible_to)
            if category is None or document.category == category
        ]

    async def list_visible_ids(self, user_id: uuid.UUID) -> Set[uuid.UUID]:
        return {document.id for document in self._documents.values() if document.has_access(user_id)}

    async def count(self, archived: bool, visible_to: Optional[uuid.UUID] = None) -> int:
        return len(self._select(archived, visible_to))

    async def update(self, document_id: uuid.UUID, mutate: DocumentMutation) -> Document:
        async with self._locks[document_id]:
            current = self._documents.get(document_id)
            if current is None:
                raise NotFound("Document not found")

            document = current.copy()
            mutate(document)
            document.version = current.version + 1
            self._documents[document_id] = document
            return document.copy()

    async def delete(self, document_id: uuid.UUID, check: DocumentMutation) -> Document:
        async with self._locks[document_id]:
            current = self._documents.get(document_id)
            if current is None:
                raise NotFound("Document not found")

            check(current.copy())
            del self._documents[document_id]

        self._locks.pop(document_id, None)
        return current

    def _select(self, archived: bool, visible_to: Optional[uuid.UUID]) -> List[Document]:
        return [
            document for document in self._documents.values()
            if document.is_archived == archived and (visible_to is None or document.has_access(visible_to))
        ]


class InMemoryActivityRepository(ActivityStore):
    """Журнал действий в памяти процесса"""

    def __init__(self):
        self._activities: List[Activity] = []

    async def append(self, activity: Activity) -> None:
        self._activities.append(activity)

    async def list(
        self,
        limit: int,
        document_ids: Optional[Collection[uuid.UUID]] = None,
        user_id: Optional[uuid.UUID] = None,
        document_id: Optional[uuid.UUID] = None
    ) -> List[Activity]:
        activities = [
            activity for activity in self._activities
            if (document_ids is None or activity.document_id in document_ids)
            and (user_id is None or activity.user_id == user_id)
            and (document_id is None or activity.document_id == document_id)
        ]
        activities.sort(key=lambda a: a.timestamp, reverse=True)
        return activities[:limit]

    async def count_since(
        self,
        since: datetime,
        document_ids: Optional[Collection[uuid.UUID]] = None
    ) -> int:
        return sum(
            1 for activity in self._activities
            if activity.timestamp >= since
            and (document_ids is None or activity.document_id in document_ids)
        )
