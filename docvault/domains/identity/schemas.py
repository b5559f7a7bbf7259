from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
from typing import Optional
from datetime import datetime
import uuid

from docvault.domains.identity.entities import Role, UserStatus


class UserBase(BaseModel):
    """Базовая схема пользователя"""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    
    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()


class UserCreate(UserBase):
    """Схема для создания пользователя"""
    password: str = Field(..., min_length=8, max_length=128)
    role: Role = Role.VIEWER
    status: UserStatus = UserStatus.ACTIVE


class UserLogin(BaseModel):
    """Схема для входа пользователя"""
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    """Схема для обновления пользователя"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    status: Optional[UserStatus] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    
    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip() if v else v


class UserResponse(BaseModel):
    """Схема для ответа с данными пользователя"""
    id: uuid.UUID
    email: str
    name: str
    role: Role
    status: UserStatus
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    """Схема ответа на вход: пользователь, токен и срок действия"""
    user: UserResponse
    token: str
    token_type: str = "bearer"
    expires_at: datetime
