from datetime import datetime
from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import async_sessionmaker

from docvault.db.models.session import Session as SessionModel
from docvault.domains.identity.entities import AuthSession
from docvault.domains.identity.store import SessionStore


class SessionRepository(SessionStore):
    """Репозиторий сессий входа"""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def create(self, auth_session: AuthSession) -> AuthSession:
        async with self.session_factory() as session:
            session.add(SessionModel(
                token=auth_session.token,
                user_id=auth_session.user_id,
                expires_at=auth_session.expires_at,
                created_at=auth_session.created_at
            ))
            await session.commit()
        return auth_session

    async def get(self, token: str) -> Optional[AuthSession]:
        async with self.session_factory() as session:
            result = await session.execute(select(SessionModel).where(SessionModel.token == token))
            model = result.scalar_one_or_none()
            if not model:
                return None
            return AuthSession(
                token=model.token,
                user_id=model.user_id,
                expires_at=model.expires_at,
                created_at=model.created_at
            )

    async def delete(self, token: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(SessionModel).where(SessionModel.token == token))
            await session.commit()
            return result.rowcount > 0

    async def purge_expired(self, now: datetime) -> int:
        async with self.session_factory() as session:
            result = await session.execute(delete(SessionModel).where(SessionModel.expires_at <= now))
            await session.commit()
            return result.rowcount
