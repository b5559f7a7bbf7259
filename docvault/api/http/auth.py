from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from docvault.core.dependencies import get_identity_service
from docvault.core.errors import InvalidCredentials
from docvault.domains.identity.entities import User
from docvault.domains.identity.schemas import UserLogin, UserResponse, LoginResponse
from docvault.domains.identity.services import IdentityService

router = APIRouter(prefix="/auth", tags=["authentication"])
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity_service: IdentityService = Depends(get_identity_service)
) -> User:
    """Зависимость для получения текущего пользователя"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    try:
        return await identity_service.authenticate(credentials.credentials)
    except InvalidCredentials as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: UserLogin,
    identity_service: IdentityService = Depends(get_identity_service)
):
    """Вход пользователя"""
    result = await identity_service.login(login_data.email, login_data.password)
    
    return LoginResponse(
        user=UserResponse.model_validate(result.user),
        token=result.token,
        expires_at=result.expires_at
    )


@router.post("/logout")
async def logout(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity_service: IdentityService = Depends(get_identity_service)
):
    """Выход пользователя"""
    await identity_service.logout(credentials.credentials if credentials else None)
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Получение информации о текущем пользователе"""
    return UserResponse.model_validate(current_user)
