from docvault.api.http.health import router as health_router
from docvault.api.http.auth import router as auth_router
from docvault.api.http.users import router as users_router
from docvault.api.http.documents import router as documents_router
from docvault.api.http.activities import router as activities_router
from docvault.api.http.files import router as files_router

__all__ = [
    "health_router",
    "auth_router",
    "users_router",
    "documents_router",
    "activities_router",
    "files_router"
]
