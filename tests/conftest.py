import pytest
import pytest_asyncio

from docvault.core.config import Settings
from docvault.core.dependencies import build_services
from docvault.core.errors import StorageFailure
from docvault.domains.identity.entities import Role, User, UserStatus
from docvault.storage.memory import InMemoryBlobStorage

PASSWORD = "password123"
PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n"


class FlakyBlobStorage(InMemoryBlobStorage):
    """Хранилище в памяти с управляемыми отказами"""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.fail_upload = False
        self.fail_delete = False
        self.fail_issue = False
        self.deleted = []

    async def upload(self, key, data, content_type=None):
        if self.fail_upload:
            raise StorageFailure("upload failed")
        return await super().upload(key, data, content_type)

    async def delete(self, blob_ref):
        if self.fail_delete:
            raise StorageFailure("delete failed")
        self.deleted.append(blob_ref)
        await super().delete(blob_ref)

    async def issue_url(self, blob_ref, ttl, disposition="inline"):
        if self.fail_issue:
            raise StorageFailure("signing failed")
        return await super().issue_url(blob_ref, ttl, disposition)


def make_settings(**overrides) -> Settings:
    values = dict(
        store_backend="memory",
        storage_backend="memory",
        bcrypt_rounds=4,
        jwt_secret="test-secret",
        public_base_url="http://testserver",
        log_level="DEBUG",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def blob_storage(settings):
    return FlakyBlobStorage(settings)


@pytest.fixture
def services(settings, blob_storage):
    return build_services(settings, blob_storage=blob_storage)


async def add_user(services, email, name, role, status=UserStatus.ACTIVE) -> User:
    user = User.create_user(
        email=email,
        name=name,
        password=PASSWORD,
        role=role,
        status=status,
        context=services.identity.pwd_context
    )
    return await services.identity.user_store.create(user)


@pytest_asyncio.fixture
async def admin(services):
    return await add_user(services, "admin@pln.com", "Admin User", Role.ADMIN)


@pytest_asyncio.fixture
async def editor(services):
    return await add_user(services, "editor@pln.com", "Editor User", Role.EDITOR)


@pytest_asyncio.fixture
async def other_editor(services):
    return await add_user(services, "editor2@pln.com", "Second Editor", Role.EDITOR)


@pytest_asyncio.fixture
async def viewer(services):
    return await add_user(services, "viewer@pln.com", "Viewer User", Role.VIEWER)


async def upload(services, actor, name="report.pdf", category="FI", access_user_ids=(), tags=()):
    return await services.documents.upload_document(
        actor,
        filename=name,
        data=PDF_BYTES,
        category=category,
        access_user_ids=access_user_ids,
        tags=tags,
        content_type="application/pdf"
    )
