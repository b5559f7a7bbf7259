import asyncio
import uuid
from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from docvault.core.dependencies import build_services
from docvault.core.errors import ConflictError, InvalidState, NotFound, ValidationError
from docvault.db.repositories import DocumentRepository
from docvault.domains.activity.entities import ActivityType
from docvault.domains.documents.entities import DocumentCategory
from docvault.domains.identity.entities import AuthSession, Role, User

from tests.conftest import FlakyBlobStorage, add_user, make_settings, upload


@pytest_asyncio.fixture
async def sql_services(tmp_path):
    settings = make_settings(store_backend="sql", database_url=f"sqlite+aiosqlite:///{tmp_path / 'docvault.db'}")
    services = build_services(settings, blob_storage=FlakyBlobStorage(settings))
    await services.prepare()
    yield services
    await services.close()


@pytest_asyncio.fixture
async def sql_editor(sql_services):
    return await add_user(sql_services, "editor@pln.com", "Editor User", Role.EDITOR)


@pytest_asyncio.fixture
async def sql_viewer(sql_services):
    return await add_user(sql_services, "viewer@pln.com", "Viewer User", Role.VIEWER)


class TestUserRepository:
    @pytest.mark.asyncio
    async def test_round_trip(self, sql_services, sql_editor):
        store = sql_services.identity.user_store

        loaded = await store.get_by_id(sql_editor.id)
        assert loaded.email == "editor@pln.com"
        assert loaded.role == Role.EDITOR
        assert (await store.get_by_email("EDITOR@pln.com")).id == sql_editor.id

    @pytest.mark.asyncio
    async def test_duplicate_email_is_rejected(self, sql_services, sql_editor):
        duplicate = User.create_user(email="editor@pln.com", name="Twin", password="password123")
        with pytest.raises(ValidationError):
            await sql_services.identity.user_store.create(duplicate)

    @pytest.mark.asyncio
    async def test_update_and_count(self, sql_services, sql_editor, sql_viewer):
        store = sql_services.identity.user_store
        sql_viewer.deactivate()
        await store.update(sql_viewer)

        assert await store.count() == 1
        assert await store.count(include_inactive=True) == 2
        assert [user.id for user in await store.list()] == [sql_editor.id]


class TestSessionRepository:
    @pytest.mark.asyncio
    async def test_create_get_delete_purge(self, sql_services, sql_editor):
        store = sql_services.identity.session_store
        now = datetime.utcnow()
        live = AuthSession(token="live", user_id=sql_editor.id, expires_at=now + timedelta(hours=1), created_at=now)
        dead = AuthSession(token="dead", user_id=sql_editor.id, expires_at=now - timedelta(hours=1), created_at=now)
        await store.create(live)
        await store.create(dead)

        assert (await store.get("live")).user_id == sql_editor.id
        assert await store.purge_expired(now) == 1
        assert await store.get("dead") is None
        assert await store.delete("live") is True
        assert await store.delete("live") is False


class TestDocumentRepository:
    @pytest.mark.asyncio
    async def test_lifecycle_against_sqlite(self, sql_services, sql_editor, sql_viewer):
        documents = sql_services.documents
        document = await upload(sql_services, sql_editor, category="QM", tags=["audit"])

        shared = await documents.share_document(sql_editor, document.id, [sql_viewer.id])
        assert shared.access_user_ids == {sql_viewer.id}
        assert shared.version == 2

        loaded = await documents.get_document(sql_viewer, document.id)
        assert loaded.category == DocumentCategory.QM
        assert loaded.tags == {"audit"}
        assert [d.id for d in await documents.list_documents(sql_viewer)] == [document.id]

        await documents.archive_document(sql_editor, document.id)
        assert await documents.list_documents(sql_viewer) == []
        assert [d.id for d in await documents.list_archived_documents(sql_viewer)] == [document.id]

        with pytest.raises(InvalidState):
            await documents.archive_document(sql_editor, document.id)

        await documents.delete_document(sql_editor, document.id)
        assert await sql_services.documents.document_store.get_by_id(document.id) is None
        assert await sql_services.documents.document_store.list_visible_ids(sql_viewer.id) == set()

        admin = await add_user(sql_services, "admin@pln.com", "Admin User", Role.ADMIN)
        types = [a.type for a in await sql_services.activity_log.list_activities(admin, document_id=document.id)]
        assert types == [ActivityType.DELETE, ActivityType.ARCHIVE, ActivityType.SHARE, ActivityType.UPLOAD]

    @pytest.mark.asyncio
    async def test_share_twice_keeps_single_grant(self, sql_services, sql_editor, sql_viewer):
        document = await upload(sql_services, sql_editor)

        await sql_services.documents.share_document(sql_editor, document.id, [sql_viewer.id])
        again = await sql_services.documents.share_document(sql_editor, document.id, [sql_viewer.id])

        assert again.access_user_ids == {sql_viewer.id}
        stored = await sql_services.documents.document_store.get_by_id(document.id)
        assert stored.access_user_ids == {sql_viewer.id}

    @pytest.mark.asyncio
    async def test_failed_check_leaves_row(self, sql_services, sql_editor):
        document = await upload(sql_services, sql_editor)

        with pytest.raises(InvalidState):
            await sql_services.documents.delete_document(sql_editor, document.id)

        assert await sql_services.documents.document_store.get_by_id(document.id) is not None

    @pytest.mark.asyncio
    async def test_update_missing_document(self, sql_services):
        with pytest.raises(NotFound):
            await sql_services.documents.document_store.update(uuid.uuid4(), lambda document: None)

    @pytest.mark.asyncio
    async def test_lost_race_is_retried_then_gives_up(self, sql_services, sql_editor):
        document = await upload(sql_services, sql_editor)
        store = DocumentRepository(sql_services.documents.document_store.session_factory, max_attempts=2)
        other = sql_services.documents.document_store
        calls = []

        def mutate(current):
            calls.append(current.version)

        original_load = store._load

        async def load_then_race(session, document_id):
            loaded = await original_load(session, document_id)
            # другая запись успевает изменить документ до условного UPDATE
            await other.update(document_id, lambda d: None)
            return loaded

        store._load = load_then_race

        with pytest.raises(ConflictError):
            await store.update(document.id, mutate)

        assert calls == [1, 2]

    @pytest.mark.asyncio
    async def test_concurrent_disjoint_shares_keep_both_sets(self, sql_services, sql_editor):
        document = await upload(sql_services, sql_editor)
        first = [
            (await add_user(sql_services, f"a{i}@pln.com", f"Reader A{i}", Role.VIEWER)).id
            for i in range(3)
        ]
        second = [
            (await add_user(sql_services, f"b{i}@pln.com", f"Reader B{i}", Role.VIEWER)).id
            for i in range(3)
        ]

        results = await asyncio.gather(
            sql_services.documents.share_document(sql_editor, document.id, first),
            sql_services.documents.share_document(sql_editor, document.id, second),
        )

        assert len(results) == 2
        stored = await sql_services.documents.document_store.get_by_id(document.id)
        assert stored.access_user_ids == set(first) | set(second)
        assert stored.version == 3

    @pytest.mark.asyncio
    async def test_concurrent_archives_succeed_once(self, sql_services, sql_editor):
        document = await upload(sql_services, sql_editor)

        results = await asyncio.gather(
            sql_services.documents.archive_document(sql_editor, document.id),
            sql_services.documents.archive_document(sql_editor, document.id),
            return_exceptions=True,
        )

        archived = [result for result in results if not isinstance(result, BaseException)]
        failed = [result for result in results if isinstance(result, BaseException)]
        assert len(archived) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], InvalidState)
        assert archived[0].is_archived
        stored = await sql_services.documents.document_store.get_by_id(document.id)
        assert stored.version == 2

    @pytest.mark.asyncio
    async def test_lost_race_is_reapplied_on_fresh_state(self, sql_services, sql_editor, sql_viewer):
        document = await upload(sql_services, sql_editor)
        other_reader = await add_user(sql_services, "reader@pln.com", "Reader", Role.VIEWER)
        store = sql_services.documents.document_store
        racer = DocumentRepository(store.session_factory)
        original_load = store._load
        raced = []

        async def load_then_race(session, document_id):
            loaded = await original_load(session, document_id)
            if not raced:
                raced.append(True)
                # другая запись успевает изменить документ до условного UPDATE
                await racer.update(document_id, lambda d: d.grant_access([other_reader.id]))
            return loaded

        store._load = load_then_race

        updated = await store.update(document.id, lambda d: d.grant_access([sql_viewer.id]))

        assert updated.access_user_ids == {sql_viewer.id, other_reader.id}
        assert updated.version == 3
        stored = await racer.get_by_id(document.id)
        assert stored.access_user_ids == {sql_viewer.id, other_reader.id}

    @pytest.mark.asyncio
    async def test_counts_and_visibility(self, sql_services, sql_editor, sql_viewer):
        store = sql_services.documents.document_store
        first = await upload(sql_services, sql_editor, access_user_ids=[sql_viewer.id])
        second = await upload(sql_services, sql_editor)
        await sql_services.documents.archive_document(sql_editor, second.id)

        assert await store.count(False) == 1
        assert await store.count(True) == 1
        assert await store.count(False, visible_to=sql_viewer.id) == 1
        assert await store.count(True, visible_to=sql_viewer.id) == 0
        assert await store.list_visible_ids(sql_viewer.id) == {first.id}
        assert await store.list_visible_ids(sql_editor.id) == {first.id, second.id}
