import logging
import uuid
from datetime import datetime, timedelta

import pytest

from docvault.core.errors import AccessDenied
from docvault.domains.activity.entities import Activity, ActivityType

from tests.conftest import upload


class TestRecord:
    @pytest.mark.asyncio
    async def test_record_keeps_snapshot_names(self, services, admin, editor):
        document = await upload(services, editor, name="budget.pdf")

        activity = await services.activity_log.record(ActivityType.VIEW, document, admin)

        assert activity.document_name == "budget.pdf"
        assert activity.user_name == "Admin User"
        assert activity.user_id == admin.id

    @pytest.mark.asyncio
    async def test_append_failure_does_not_break_operation(self, services, editor, monkeypatch, caplog):
        async def broken_append(activity):
            raise RuntimeError("log store down")

        monkeypatch.setattr(services.activity_log.activity_store, "append", broken_append)

        with caplog.at_level(logging.ERROR, logger="docvault"):
            document = await upload(services, editor)

        assert document.id is not None
        assert "Failed to record upload activity" in caplog.text


class TestListing:
    @pytest.mark.asyncio
    async def test_newest_first_and_limited(self, services, admin, editor):
        store = services.activity_log.activity_store
        document_id = uuid.uuid4()
        start = datetime.utcnow() - timedelta(hours=1)
        for minute in range(60):
            await store.append(Activity(
                type=ActivityType.VIEW,
                document_id=document_id,
                document_name="doc.pdf",
                user_id=editor.id,
                user_name=editor.name,
                timestamp=start + timedelta(minutes=minute)
            ))

        activities = await services.activity_log.list_activities(admin, limit=500)

        assert len(activities) == services.settings.max_activity_limit
        timestamps = [activity.timestamp for activity in activities]
        assert timestamps == sorted(timestamps, reverse=True)

    @pytest.mark.asyncio
    async def test_non_admin_sees_only_visible_documents(self, services, admin, editor, other_editor, viewer):
        visible = await upload(services, editor, access_user_ids=[viewer.id])
        hidden = await upload(services, other_editor)

        activities = await services.activity_log.list_activities(viewer)
        assert {activity.document_id for activity in activities} == {visible.id}

        assert await services.activity_log.list_activities(viewer, document_id=hidden.id) == []
        assert len(await services.activity_log.list_activities(admin)) == 2

    @pytest.mark.asyncio
    async def test_user_without_documents_sees_nothing(self, services, editor, viewer):
        await upload(services, editor)
        assert await services.activity_log.list_activities(viewer) == []
        assert await services.activity_log.count_recent(viewer) == 0

    @pytest.mark.asyncio
    async def test_filter_by_user(self, services, admin, editor, viewer):
        document = await upload(services, editor, access_user_ids=[viewer.id])
        await services.documents.view_document(viewer, document.id)

        activities = await services.activity_log.list_activities(admin, user_id=viewer.id)

        assert [activity.type for activity in activities] == [ActivityType.VIEW]

    @pytest.mark.asyncio
    async def test_inactive_viewer_is_denied(self, services, admin, viewer):
        viewer.deactivate()
        with pytest.raises(AccessDenied):
            await services.activity_log.list_activities(viewer)
