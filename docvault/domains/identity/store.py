import uuid
from datetime import datetime
from typing import List, Optional

from docvault.domains.identity.entities import AuthSession, User


class UserStore:
    """Контракт справочника пользователей"""

    async def create(self, user: User) -> User:
        raise NotImplementedError("Subclasses must implement create")

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        raise NotImplementedError("Subclasses must implement get_by_id")

    async def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError("Subclasses must implement get_by_email")

    async def update(self, user: User) -> User:
        raise NotImplementedError("Subclasses must implement update")

    async def list(self, include_inactive: bool = False) -> List[User]:
        """Пользователи, отсортированные по имени"""
        raise NotImplementedError("Subclasses must implement list")

    async def count(self, include_inactive: bool = False) -> int:
        raise NotImplementedError("Subclasses must implement count")


class SessionStore:
    """Контракт хранилища сессий"""

    async def create(self, session: AuthSession) -> AuthSession:
        raise NotImplementedError("Subclasses must implement create")

    async def get(self, token: str) -> Optional[AuthSession]:
        raise NotImplementedError("Subclasses must implement get")

    async def delete(self, token: str) -> bool:
        raise NotImplementedError("Subclasses must implement delete")

    async def purge_expired(self, now: datetime) -> int:
        """Удаление истекших сессий, возвращает количество удаленных"""
        raise NotImplementedError("Subclasses must implement purge_expired")
