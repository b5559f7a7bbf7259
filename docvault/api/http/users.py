from fastapi import APIRouter, Depends, Query, status
from typing import List
import uuid

from docvault.api.http.auth import get_current_user
from docvault.core.dependencies import get_identity_service
from docvault.domains.identity.entities import User
from docvault.domains.identity.schemas import UserCreate, UserResponse, UserUpdate
from docvault.domains.identity.services import IdentityService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
async def get_users(
    include_inactive: bool = Query(False),
    current_user: User = Depends(get_current_user),
    identity_service: IdentityService = Depends(get_identity_service)
):
    """Получение списка пользователей"""
    users = await identity_service.list_users(current_user, include_inactive=include_inactive)
    return [UserResponse.model_validate(user) for user in users]


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    current_user: User = Depends(get_current_user),
    identity_service: IdentityService = Depends(get_identity_service)
):
    """Создание пользователя"""
    user = await identity_service.create_user(current_user, user_data)
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    identity_service: IdentityService = Depends(get_identity_service)
):
    """Получение информации о пользователе"""
    user = await identity_service.view_user(current_user, user_id)
    return UserResponse.model_validate(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: uuid.UUID,
    update_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    identity_service: IdentityService = Depends(get_identity_service)
):
    """Обновление пользователя"""
    user = await identity_service.update_user(current_user, user_id, update_data)
    return UserResponse.model_validate(user)
