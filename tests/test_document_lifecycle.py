import asyncio
import uuid

import pytest

from docvault.core.errors import AccessDenied, InvalidState, NotFound, StorageFailure, ValidationError
from docvault.domains.activity.entities import ActivityType
from docvault.domains.documents.entities import DocumentCategory
from docvault.domains.identity.schemas import UserCreate, UserUpdate

from tests.conftest import PDF_BYTES, upload


async def activity_types(services, admin, document_id):
    activities = await services.activity_log.list_activities(admin, document_id=document_id)
    return [activity.type for activity in activities]


class TestScenarios:
    @pytest.mark.asyncio
    async def test_viewer_without_access_cannot_view(self, services, admin, viewer):
        document = await upload(services, admin, name="plan.pdf", category="FI")

        with pytest.raises(AccessDenied):
            await services.documents.view_document(viewer, document.id)

    @pytest.mark.asyncio
    async def test_shared_viewer_can_view_and_is_logged(self, services, admin, editor, viewer):
        document = await upload(services, editor, name="guide.pdf")
        await services.documents.share_document(editor, document.id, [viewer.id])

        handle = await services.documents.view_document(viewer, document.id)

        assert handle.url.startswith("http://testserver/files/")
        views = [
            activity for activity in await services.activity_log.list_activities(admin, document_id=document.id)
            if activity.type == ActivityType.VIEW
        ]
        assert len(views) == 1
        assert views[0].user_id == viewer.id

    @pytest.mark.asyncio
    async def test_archive_then_delete(self, services, admin, editor, blob_storage):
        document = await upload(services, editor, name="old-guide.pdf")
        await services.documents.archive_document(editor, document.id)

        await services.documents.delete_document(editor, document.id)

        assert document.blob_ref not in blob_storage
        assert await services.documents.list_documents(editor) == []
        assert await services.documents.list_archived_documents(editor) == []
        deletes = [
            activity for activity in await services.activity_log.list_activities(admin, document_id=document.id)
            if activity.type == ActivityType.DELETE
        ]
        assert len(deletes) == 1
        assert deletes[0].document_name == "old-guide.pdf"

    @pytest.mark.asyncio
    async def test_delete_active_document_fails(self, services, editor, blob_storage):
        document = await upload(services, editor)

        with pytest.raises(InvalidState):
            await services.documents.delete_document(editor, document.id)

        stored = await services.documents.get_document(editor, document.id)
        assert stored.archived_at is None
        assert stored.version == document.version
        assert document.blob_ref in blob_storage


class TestUpload:
    @pytest.mark.asyncio
    async def test_upload_creates_active_document(self, services, editor, viewer, blob_storage):
        document = await upload(services, editor, access_user_ids=[viewer.id, editor.id], tags=["sap", " fi "])

        assert document.file_type == "pdf"
        assert document.size_bytes == len(PDF_BYTES)
        assert document.category == DocumentCategory.FI
        assert document.uploader_name == "Editor User"
        assert document.access_user_ids == {viewer.id}
        assert document.tags == {"sap", "fi"}
        assert not document.is_archived
        assert await blob_storage.fetch(document.blob_ref) == PDF_BYTES

    @pytest.mark.asyncio
    async def test_viewer_cannot_upload(self, services, viewer, blob_storage):
        with pytest.raises(AccessDenied):
            await upload(services, viewer)
        assert len(blob_storage) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["notes.txt", "archive.zip", "noextension"])
    async def test_rejects_unsupported_file_type(self, services, editor, name):
        with pytest.raises(ValidationError):
            await upload(services, editor, name=name)

    @pytest.mark.asyncio
    async def test_rejects_empty_and_oversized_files(self, services, editor, settings):
        with pytest.raises(ValidationError):
            await services.documents.upload_document(editor, "empty.pdf", b"", "FI")

        settings.max_upload_bytes = 4
        with pytest.raises(ValidationError):
            await services.documents.upload_document(editor, "big.pdf", b"12345", "FI")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("category", ["FI", "fi", "SAP FI", DocumentCategory.FI])
    async def test_accepts_category_labels(self, services, editor, category):
        document = await upload(services, editor, category=category)
        assert document.category == DocumentCategory.FI

    @pytest.mark.asyncio
    async def test_rejects_unknown_category(self, services, editor):
        with pytest.raises(ValidationError):
            await upload(services, editor, category="HR")

    @pytest.mark.asyncio
    async def test_rejects_unknown_access_user(self, services, editor, blob_storage):
        with pytest.raises(NotFound):
            await upload(services, editor, access_user_ids=[uuid.uuid4()])
        assert len(blob_storage) == 0

    @pytest.mark.asyncio
    async def test_storage_failure_creates_no_record(self, services, editor, blob_storage):
        blob_storage.fail_upload = True

        with pytest.raises(StorageFailure):
            await upload(services, editor)

        assert await services.documents.list_documents(editor) == []

    @pytest.mark.asyncio
    async def test_record_failure_removes_stored_file(self, services, editor, blob_storage, monkeypatch):
        async def broken_create(document):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(services.documents.document_store, "create", broken_create)

        with pytest.raises(RuntimeError):
            await upload(services, editor)

        assert len(blob_storage) == 0
        assert len(blob_storage.deleted) == 1

    @pytest.mark.asyncio
    async def test_upload_logs_activity(self, services, admin, editor):
        document = await upload(services, editor)
        assert await activity_types(services, admin, document.id) == [ActivityType.UPLOAD]


class TestStateMachine:
    @pytest.mark.asyncio
    async def test_archive_twice_fails(self, services, editor):
        document = await upload(services, editor)
        await services.documents.archive_document(editor, document.id)

        with pytest.raises(InvalidState):
            await services.documents.archive_document(editor, document.id)

    @pytest.mark.asyncio
    async def test_restore_active_fails(self, services, editor):
        document = await upload(services, editor)

        with pytest.raises(InvalidState):
            await services.documents.restore_document(editor, document.id)

    @pytest.mark.asyncio
    async def test_archive_restore_round_trip(self, services, editor, viewer):
        document = await upload(services, editor, access_user_ids=[viewer.id], tags=["q1"])

        archived = await services.documents.archive_document(editor, document.id)
        assert archived.is_archived
        assert archived.archived_at >= archived.created_at

        restored = await services.documents.restore_document(editor, document.id)
        assert restored.archived_at is None
        for field in ("name", "file_type", "size_bytes", "category", "uploader_id",
                      "uploader_name", "blob_ref", "access_user_ids", "tags", "created_at"):
            assert getattr(restored, field) == getattr(document, field)
        assert restored.updated_at >= document.updated_at
        assert restored.version == document.version + 2

    @pytest.mark.asyncio
    async def test_shared_viewer_cannot_archive(self, services, editor, viewer):
        document = await upload(services, editor, access_user_ids=[viewer.id])

        with pytest.raises(AccessDenied):
            await services.documents.archive_document(viewer, document.id)

        stored = await services.documents.get_document(editor, document.id)
        assert not stored.is_archived

    @pytest.mark.asyncio
    async def test_admin_can_archive_any_document(self, services, admin, editor):
        document = await upload(services, editor)
        archived = await services.documents.archive_document(admin, document.id)
        assert archived.is_archived

    @pytest.mark.asyncio
    async def test_missing_document(self, services, editor):
        with pytest.raises(NotFound):
            await services.documents.archive_document(editor, uuid.uuid4())
        with pytest.raises(NotFound):
            await services.documents.get_document(editor, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_delete_proceeds_when_blob_removal_fails(self, services, admin, editor, blob_storage):
        document = await upload(services, editor)
        await services.documents.archive_document(editor, document.id)
        blob_storage.fail_delete = True

        await services.documents.delete_document(editor, document.id)

        assert await services.documents.list_archived_documents(admin) == []
        assert ActivityType.DELETE in await activity_types(services, admin, document.id)


class TestShare:
    @pytest.mark.asyncio
    async def test_share_is_idempotent(self, services, editor, viewer):
        document = await upload(services, editor)

        await services.documents.share_document(editor, document.id, [viewer.id])
        shared = await services.documents.share_document(editor, document.id, [viewer.id])

        assert shared.access_user_ids == {viewer.id}

    @pytest.mark.asyncio
    async def test_share_requires_users(self, services, editor):
        document = await upload(services, editor)
        with pytest.raises(ValidationError):
            await services.documents.share_document(editor, document.id, [])

    @pytest.mark.asyncio
    async def test_share_with_unknown_user(self, services, editor):
        document = await upload(services, editor)
        with pytest.raises(NotFound):
            await services.documents.share_document(editor, document.id, [uuid.uuid4()])

    @pytest.mark.asyncio
    async def test_shared_user_cannot_reshare(self, services, editor, other_editor, viewer):
        document = await upload(services, editor, access_user_ids=[other_editor.id])
        with pytest.raises(AccessDenied):
            await services.documents.share_document(other_editor, document.id, [viewer.id])

    @pytest.mark.asyncio
    async def test_concurrent_disjoint_shares_are_merged(self, services, admin, editor):
        document = await upload(services, editor)
        first = [
            (await services.identity.create_user(admin, _user_create(f"a{i}@pln.com"))).id
            for i in range(3)
        ]
        second = [
            (await services.identity.create_user(admin, _user_create(f"b{i}@pln.com"))).id
            for i in range(3)
        ]

        await asyncio.gather(
            services.documents.share_document(editor, document.id, first),
            services.documents.share_document(editor, document.id, second),
        )

        stored = await services.documents.get_document(editor, document.id)
        assert stored.access_user_ids == set(first) | set(second)


class TestListing:
    @pytest.mark.asyncio
    async def test_listing_is_filtered_by_visibility(self, services, admin, editor, other_editor, viewer):
        own = await upload(services, editor, name="own.pdf")
        shared = await upload(services, other_editor, name="shared.pdf", access_user_ids=[editor.id])
        await upload(services, other_editor, name="private.pdf")

        names = {document.name for document in await services.documents.list_documents(editor)}
        assert names == {own.name, shared.name}
        assert await services.documents.list_documents(viewer) == []
        assert len(await services.documents.list_documents(admin)) == 3

    @pytest.mark.asyncio
    async def test_archived_listing_is_separate(self, services, editor):
        first = await upload(services, editor, name="first.pdf")
        second = await upload(services, editor, name="second.pdf")
        await services.documents.archive_document(editor, first.id)
        await services.documents.archive_document(editor, second.id)

        archived = await services.documents.list_archived_documents(editor)

        assert [document.name for document in archived] == ["second.pdf", "first.pdf"]
        assert await services.documents.list_documents(editor) == []

    @pytest.mark.asyncio
    async def test_filters_and_sorting(self, services, editor):
        await upload(services, editor, name="Budget.pdf", category="FI", tags=["finance"])
        await upload(services, editor, name="audit.docx", category="QM")
        await upload(services, editor, name="Deck.pptx", category="CMCT", tags=["audit"])

        by_category = await services.documents.list_documents(editor, category="QM")
        assert [document.name for document in by_category] == ["audit.docx"]

        by_type = await services.documents.list_documents(editor, file_type=".PPTX")
        assert [document.name for document in by_type] == ["Deck.pptx"]

        searched = await services.documents.list_documents(editor, search="AUDIT", sort="name")
        assert [document.name for document in searched] == ["audit.docx", "Deck.pptx"]

        with pytest.raises(ValidationError):
            await services.documents.list_documents(editor, sort="random")

    @pytest.mark.asyncio
    async def test_inactive_user_cannot_list(self, services, admin, editor):
        await services.identity.update_user(admin, editor.id, _user_update(status="inactive"))
        editor.deactivate()
        with pytest.raises(AccessDenied):
            await services.documents.list_documents(editor)

    @pytest.mark.asyncio
    async def test_stats(self, services, admin, editor, viewer):
        kept = await upload(services, editor, category="FI", access_user_ids=[viewer.id])
        archived = await upload(services, editor, category="QM")
        await services.documents.archive_document(editor, archived.id)

        stats = await services.documents.get_stats(editor)

        assert stats["active_documents"] == 1
        assert stats["archived_documents"] == 1
        assert stats["documents_by_category"] == {"CMCT": 0, "FI": 1, "QM": 0}
        assert stats["active_users"] == 3
        assert stats["recent_activities"] == 3

        viewer_stats = await services.documents.get_stats(viewer)
        assert viewer_stats["active_documents"] == 1
        assert viewer_stats["archived_documents"] == 0
        assert kept.id in await services.documents.document_store.list_visible_ids(viewer.id)


class TestAccessHandles:
    @pytest.mark.asyncio
    async def test_download_logs_activity(self, services, admin, editor):
        document = await upload(services, editor)
        handle = await services.documents.download_document(editor, document.id)

        assert handle.expires_at is not None
        assert ActivityType.DOWNLOAD in await activity_types(services, admin, document.id)

    @pytest.mark.asyncio
    async def test_signing_failure_is_surfaced_and_not_logged(self, services, admin, editor, blob_storage):
        document = await upload(services, editor)
        blob_storage.fail_issue = True

        with pytest.raises(StorageFailure):
            await services.documents.view_document(editor, document.id)

        assert ActivityType.VIEW not in await activity_types(services, admin, document.id)

    @pytest.mark.asyncio
    async def test_slow_storage_times_out(self, services, editor, blob_storage, settings, monkeypatch):
        document = await upload(services, editor)
        settings.storage_timeout_seconds = 0.01

        async def slow_issue(blob_ref, ttl, disposition="inline"):
            await asyncio.sleep(1)

        monkeypatch.setattr(blob_storage, "issue_url", slow_issue)

        with pytest.raises(StorageFailure):
            await services.documents.download_document(editor, document.id)


def _user_create(email):
    return UserCreate(email=email, name=email.split("@")[0], password="password123")


def _user_update(**values):
    return UserUpdate(**values)
