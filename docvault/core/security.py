import uuid
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext

from docvault.core.config import Settings

# Контекст для хеширования паролей
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def password_context(rounds: Optional[int] = None) -> CryptContext:
    """Контекст хеширования с заданной стоимостью bcrypt"""
    if rounds is None:
        return pwd_context
    return pwd_context.copy(bcrypt__rounds=rounds)


def verify_password(plain_password: str, hashed_password: str, context: CryptContext = pwd_context) -> bool:
    """Проверка пароля"""
    # bcrypt учитывает только первые 72 байта
    return context.verify(plain_password[:72], hashed_password)


def get_password_hash(password: str, context: CryptContext = pwd_context) -> str:
    """Хеширование пароля"""
    return context.hash(password[:72])


def create_access_token(
    data: Dict[str, Any],
    settings: Settings,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Создание JWT токена доступа"""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(hours=settings.session_ttl_hours)

    # jti делает токены уникальными даже при одновременном входе
    to_encode.update({"exp": expire, "jti": uuid.uuid4().hex, "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, settings: Settings) -> Optional[Dict[str, Any]]:
    """Проверка JWT токена и извлечение данных"""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    if payload.get("type") != "access":
        return None

    return payload


def create_file_token(
    blob_ref: str,
    expires_at: datetime,
    settings: Settings,
    disposition: str = "inline"
) -> str:
    """Подписанный токен для временной ссылки на файл"""
    to_encode = {"sub": blob_ref, "exp": expires_at, "type": "file", "disposition": disposition}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_file_token(token: str, settings: Settings) -> Optional[Dict[str, Any]]:
    """Проверка файлового токена; sub содержит ссылку на blob"""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    if payload.get("type") != "file" or not payload.get("sub"):
        return None

    return payload
