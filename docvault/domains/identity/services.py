import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from docvault.core.config import Settings
from docvault.core.errors import AccessDenied, InvalidCredentials, NotFound, ValidationError
from docvault.core.security import create_access_token, password_context, verify_token
from docvault.domains.identity.entities import AuthSession, LoginResult, Role, User
from docvault.domains.identity.schemas import UserCreate, UserUpdate
from docvault.domains.identity.store import SessionStore, UserStore

logger = logging.getLogger(__name__)

DEFAULT_USERS = (
    ("admin@pln.com", "Admin User", Role.ADMIN),
    ("editor@pln.com", "Editor User", Role.EDITOR),
    ("viewer@pln.com", "Viewer User", Role.VIEWER),
)


class IdentityService:
    """Сервис для работы с идентификацией и аутентификацией пользователей"""

    def __init__(self, user_store: UserStore, session_store: SessionStore, settings: Settings):
        self.user_store = user_store
        self.session_store = session_store
        self.settings = settings
        self.pwd_context = password_context(settings.bcrypt_rounds)

    async def login(self, email: str, password: str) -> LoginResult:
        """Вход пользователя: JWT токен и сессия с ограниченным сроком"""
        user = await self.user_store.get_by_email(email.lower())

        if not user or not user.is_active or not user.authenticate(password, self.pwd_context):
            logger.info(f"Failed login attempt for {email}")
            raise InvalidCredentials()

        ttl = timedelta(hours=self.settings.session_ttl_hours)
        token = create_access_token(
            data={"sub": str(user.id), "email": user.email, "role": user.role.value},
            settings=self.settings,
            expires_delta=ttl
        )
        now = datetime.utcnow()
        session = AuthSession(token=token, user_id=user.id, expires_at=now + ttl, created_at=now)
        await self.session_store.create(session)

        logger.info(f"User {user.id} logged in")
        return LoginResult(user=user, token=token, expires_at=session.expires_at)

    async def logout(self, token: Optional[str]) -> None:
        """Выход пользователя, повторный вызов безопасен"""
        if not token:
            return
        if await self.session_store.delete(token):
            logger.info("Session closed")

    async def authenticate(self, token: str) -> User:
        """Получение текущего пользователя по токену"""
        payload = verify_token(token, self.settings)
        if not payload:
            raise InvalidCredentials("Invalid token")

        session = await self.session_store.get(token)
        if not session:
            raise InvalidCredentials("Invalid or expired token")

        if session.is_expired():
            await self.session_store.delete(token)
            raise InvalidCredentials("Invalid or expired token")

        user = await self.user_store.get_by_id(session.user_id)
        if not user or not user.is_active:
            raise InvalidCredentials("User not found or inactive")

        return user

    async def purge_expired_sessions(self) -> int:
        """Удаление истекших сессий"""
        removed = await self.session_store.purge_expired(datetime.utcnow())
        if removed:
            logger.info(f"Removed {removed} expired session(s)")
        return removed

    async def get_user(self, user_id: uuid.UUID) -> User:
        """Получение пользователя по id"""
        user = await self.user_store.get_by_id(user_id)
        if not user:
            raise NotFound("User not found")
        return user

    async def view_user(self, actor: User, user_id: uuid.UUID) -> User:
        """Профиль пользователя; неактивные видны только администраторам"""
        user = await self.get_user(user_id)
        if not user.is_active and not actor.is_admin:
            raise AccessDenied("Only administrators can view inactive users")
        return user

    async def list_users(self, actor: User, include_inactive: bool = False) -> List[User]:
        """Получение списка пользователей"""
        if include_inactive and not actor.is_admin:
            raise AccessDenied("Only administrators can list inactive users")
        return await self.user_store.list(include_inactive=include_inactive)

    async def create_user(self, actor: User, user_data: UserCreate) -> User:
        """Создание пользователя администратором"""
        self._ensure_admin(actor)

        if await self.user_store.get_by_email(user_data.email.lower()):
            raise ValidationError("Email already registered")

        user = User.create_user(
            email=user_data.email,
            name=user_data.name,
            password=user_data.password,
            role=user_data.role,
            status=user_data.status,
            context=self.pwd_context
        )
        created = await self.user_store.create(user)

        logger.info(f"Admin {actor.id} created user {created.id} ({created.role.value})")
        return created

    async def update_user(self, actor: User, user_id: uuid.UUID, update_data: UserUpdate) -> User:
        """Обновление профиля пользователя администратором"""
        self._ensure_admin(actor)

        user = await self.get_user(user_id)

        if update_data.email and update_data.email.lower() != user.email:
            if await self.user_store.get_by_email(update_data.email.lower()):
                raise ValidationError("Email already registered")

        user.update_profile(
            name=update_data.name,
            email=update_data.email.lower() if update_data.email else None,
            role=update_data.role,
            status=update_data.status
        )
        if update_data.password:
            user.set_password(update_data.password, self.pwd_context)

        updated = await self.user_store.update(user)
        logger.info(f"Admin {actor.id} updated user {user_id}")
        return updated

    async def seed_default_users(self, password: str) -> List[User]:
        """Начальные учетные записи для пустого справочника"""
        if await self.user_store.count(include_inactive=True):
            return []

        created = []
        for email, name, role in DEFAULT_USERS:
            user = User.create_user(email=email, name=name, password=password, role=role, context=self.pwd_context)
            created.append(await self.user_store.create(user))
            logger.info(f"Created user: {email}")

        return created

    @staticmethod
    def _ensure_admin(actor: User) -> None:
        if not actor.is_active or actor.role != Role.ADMIN:
            raise AccessDenied("Only administrators can manage users")
