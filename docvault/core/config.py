from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./docvault.db"
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"

    # Сессии
    session_ttl_hours: int = 24
    session_sweep_interval_seconds: int = 300
    bcrypt_rounds: int = 12

    # Хранилища
    store_backend: str = "sql"
    create_schema: bool = True
    storage_backend: str = "local"
    azure_storage_connection_string: Optional[str] = None
    azure_storage_container: str = "documents"
    local_storage_root: str = "uploads"
    public_base_url: str = ""
    storage_timeout_seconds: float = 30.0
    access_url_ttl_seconds: int = 3600

    # Ограничения
    max_upload_bytes: int = 50 * 1024 * 1024
    max_activity_limit: int = 50
    max_update_attempts: int = 5

    seed_default_users: bool = False
    seed_password: str = "password"

    log_level: str = "INFO"
    cors_origins: str = "*"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
