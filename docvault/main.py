import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docvault.api.http import (
    activities_router, auth_router, documents_router,
    files_router, health_router, users_router
)
from docvault.core.config import Settings, get_settings
from docvault.core.dependencies import Services, build_services
from docvault.core.errors import (
    AccessDenied, DocVaultError, InvalidCredentials, InvalidState,
    NotFound, StorageFailure, ValidationError
)
from docvault.core.logging import configure_logging

logger = logging.getLogger(__name__)

# порядок важен: первым совпадает более специфичный класс
ERROR_STATUS = (
    (InvalidCredentials, status.HTTP_401_UNAUTHORIZED),
    (AccessDenied, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (InvalidState, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (StorageFailure, status.HTTP_502_BAD_GATEWAY),
)


async def sweep_expired_sessions(services: Services) -> None:
    """Периодическое удаление истекших сессий"""
    interval = services.settings.session_sweep_interval_seconds
    while True:
        await asyncio.sleep(interval)
        try:
            await services.identity.purge_expired_sessions()
        except Exception:
            logger.exception("Failed to purge expired sessions")


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """Сборка приложения"""
    settings = settings or (services.settings if services else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        app_services = app.state.services

        await app_services.prepare()
        if settings.seed_default_users:
            await app_services.identity.seed_default_users(settings.seed_password)

        sweeper = asyncio.create_task(sweep_expired_sessions(app_services))
        logger.info(f"DocVault started (store={settings.store_backend}, storage={settings.storage_backend})")
        try:
            yield
        finally:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass
            await app_services.close()
            logger.info("DocVault stopped")

    app = FastAPI(
        title="DocVault",
        description="Хранилище документов с ролевым доступом и журналом действий",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.services = services or build_services(settings)

    # Настройка CORS для работы с frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DocVaultError)
    async def docvault_error_handler(request: Request, exc: DocVaultError):
        for error_class, status_code in ERROR_STATUS:
            if isinstance(exc, error_class):
                break
        else:
            status_code = status.HTTP_400_BAD_REQUEST

        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"}
        )

    # Подключаем роутеры
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(documents_router)
    app.include_router(activities_router)
    app.include_router(files_router)

    @app.get("/")
    async def root():
        """Корневой эндпоинт"""
        return {
            "message": "DocVault API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health"
        }

    return app


app = create_app()
