import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from passlib.context import CryptContext

from docvault.core.security import get_password_hash, verify_password, pwd_context


class Role(str, enum.Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class User:
    """Сущность пользователя домена Identity"""
    
    def __init__(
        self,
        id: uuid.UUID,
        email: str,
        name: str,
        role: Role = Role.VIEWER,
        status: UserStatus = UserStatus.ACTIVE,
        password_hash: str = "",
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.id = id
        self.email = email
        self.name = name
        self.role = Role(role)
        self.status = UserStatus(status)
        self.password_hash = password_hash
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or self.created_at
    
    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE
    
    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
    
    def authenticate(self, password: str, context: CryptContext = pwd_context) -> bool:
        """Проверка пароля пользователя"""
        if not self.password_hash:
            return False
        return verify_password(password, self.password_hash, context)
    
    def update_profile(
        self,
        name: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[Role] = None,
        status: Optional[UserStatus] = None
    ) -> None:
        """Обновление профиля пользователя"""
        if name:
            self.name = name
        if email:
            self.email = email
        if role:
            self.role = Role(role)
        if status:
            self.status = UserStatus(status)
        self.updated_at = datetime.utcnow()
    
    def set_password(self, password: str, context: CryptContext = pwd_context) -> None:
        self.password_hash = get_password_hash(password, context)
        self.updated_at = datetime.utcnow()
    
    def deactivate(self) -> None:
        """Деактивация пользователя"""
        self.status = UserStatus.INACTIVE
        self.updated_at = datetime.utcnow()
    
    def activate(self) -> None:
        """Активация пользователя"""
        self.status = UserStatus.ACTIVE
        self.updated_at = datetime.utcnow()
    
    @classmethod
    def create_user(
        cls,
        email: str,
        name: str,
        password: str,
        role: Role = Role.VIEWER,
        status: UserStatus = UserStatus.ACTIVE,
        context: CryptContext = pwd_context
    ) -> "User":
        """Создание нового пользователя с хешированием пароля"""
        return cls(
            id=uuid.uuid4(),
            email=email.lower(),
            name=name,
            role=role,
            status=status,
            password_hash=get_password_hash(password, context)
        )
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, User):
            return False
        return self.id == other.id
    
    def __hash__(self) -> int:
        return hash(self.id)
    
    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email}, role={self.role.value})"


@dataclass
class AuthSession:
    """Сессия входа, привязанная к токену"""
    token: str
    user_id: uuid.UUID
    expires_at: datetime
    created_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at


@dataclass
class LoginResult:
    user: User
    token: str
    expires_at: datetime
