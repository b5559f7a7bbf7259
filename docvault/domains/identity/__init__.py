from docvault.domains.identity.entities import User, Role, UserStatus, AuthSession, LoginResult
from docvault.domains.identity.schemas import (
    UserBase, UserCreate, UserLogin, UserUpdate, UserResponse, LoginResponse
)
from docvault.domains.identity.services import IdentityService

__all__ = [
    "User", "Role", "UserStatus", "AuthSession", "LoginResult",
    "UserBase", "UserCreate", "UserLogin", "UserUpdate", "UserResponse", "LoginResponse",
    "IdentityService"
]
