from typing import Optional, List
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
import uuid

from docvault.core.errors import ValidationError
from docvault.db.models.user import User as UserModel
from docvault.domains.identity.entities import User, UserStatus
from docvault.domains.identity.store import UserStore


class UserRepository(UserStore):
    """Репозиторий для работы с пользователями"""
    
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
    
    async def create(self, user: User) -> User:
        """Создание нового пользователя"""
        db_user = self._to_model(user)
        
        async with self.session_factory() as session:
            session.add(db_user)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ValidationError("User with this email already exists")
            await session.refresh(db_user)
            return self._to_domain(db_user)
    
    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Получение пользователя по id"""
        async with self.session_factory() as session:
            db_user = await session.get(UserModel, user_id)
            return self._to_domain(db_user) if db_user else None
    
    async def get_by_email(self, email: str) -> Optional[User]:
        """Получение пользователя по email"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(UserModel).where(UserModel.email == email.lower())
            )
            db_user = result.scalar_one_or_none()
            return self._to_domain(db_user) if db_user else None
    
    async def update(self, user: User) -> User:
        """Обновление пользователя"""
        stmt = (
            update(UserModel)
            .where(UserModel.id == user.id)
            .values(
                email=user.email,
                name=user.name,
                role=user.role.value,
                status=user.status.value,
                password_hash=user.password_hash,
                updated_at=user.updated_at
            )
        )
        
        async with self.session_factory() as session:
            try:
                await session.execute(stmt)
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ValidationError("User with this email already exists")
        
        return await self.get_by_id(user.id)
    
    async def list(self, include_inactive: bool = False) -> List[User]:
        """Получение списка пользователей"""
        stmt = select(UserModel).order_by(UserModel.name, UserModel.email)
        if not include_inactive:
            stmt = stmt.where(UserModel.status == UserStatus.ACTIVE.value)
        
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_domain(user) for user in result.scalars().all()]
    
    async def count(self, include_inactive: bool = False) -> int:
        stmt = select(func.count()).select_from(UserModel)
        if not include_inactive:
            stmt = stmt.where(UserModel.status == UserStatus.ACTIVE.value)
        
        async with self.session_factory() as session:
            return (await session.execute(stmt)).scalar_one()
    
    def _to_domain(self, db_user: UserModel) -> User:
        """Преобразование модели БД в доменную сущность"""
        return User(
            id=db_user.id,
            email=db_user.email,
            name=db_user.name,
            role=db_user.role,
            status=db_user.status,
            password_hash=db_user.password_hash,
            created_at=db_user.created_at,
            updated_at=db_user.updated_at
        )
    
    def _to_model(self, user: User) -> UserModel:
        """Преобразование доменной сущности в модель БД"""
        return UserModel(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role.value,
            status=user.status.value,
            password_hash=user.password_hash,
            created_at=user.created_at,
            updated_at=user.updated_at
        )
