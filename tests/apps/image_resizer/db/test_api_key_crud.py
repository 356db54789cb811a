"""
Test suite for APIKeyDB.

- Lookup by secret (admission path)
- Conditional usage update (compare-and-swap)
- Owner-scoped list/get/update/delete

Run all tests:
    pytest tests/apps/image_resizer/db/test_api_key_crud.py -v

Run with coverage:
    pytest tests/apps/image_resizer/db/test_api_key_crud.py --cov=app.apps.image_resizer.db.crud.api_key --cov-report=term-missing -v
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import select

from app.apps.image_resizer.db.crud import api_key_db
from app.apps.image_resizer.db.models import ApiKey


NOW = datetime(2025, 12, 1, 12, 0, tzinfo=timezone.utc)


class TestGetByKey:

    @pytest.mark.asyncio
    async def test_exact_match(self, db_session, make_api_key):
        api_key = await make_api_key(key="dev_sk_exact")

        found = await api_key_db.get_by_key(db_session, "dev_sk_exact")

        assert found is not None
        assert found.id == api_key.id

    @pytest.mark.asyncio
    async def test_no_partial_or_case_insensitive_match(self, db_session, make_api_key):
        await make_api_key(key="dev_sk_exact")

        assert await api_key_db.get_by_key(db_session, "dev_sk_exac") is None
        assert await api_key_db.get_by_key(db_session, "DEV_SK_EXACT") is None

    @pytest.mark.asyncio
    async def test_unknown_key(self, db_session):
        assert await api_key_db.get_by_key(db_session, "dev_sk_missing") is None

    @pytest.mark.asyncio
    async def test_soft_deleted_key_is_invisible(self, db_session, make_api_key):
        await make_api_key(key="dev_sk_gone", is_deleted=True)

        assert await api_key_db.get_by_key(db_session, "dev_sk_gone") is None

    @pytest.mark.asyncio
    async def test_refreshes_instance_already_in_session(
        self, db_session, make_api_key
    ):
        api_key = await make_api_key(key="dev_sk_stale", current_usage=1)
        await api_key_db.update_by_conditions(
            db_session,
            [ApiKey.id == api_key.id],
            {"current_usage": 4},
            commit_self=False,
        )

        found = await api_key_db.get_by_key(db_session, "dev_sk_stale")

        assert found is api_key
        assert found.current_usage == 4


class TestUpdateUsageIfUnchanged:

    @pytest.mark.asyncio
    async def test_updates_when_values_match(self, db_session, make_api_key):
        api_key = await make_api_key(current_usage=2, last_reset_month="2025-12")

        updated = await api_key_db.update_usage_if_unchanged(
            db_session,
            key=api_key.key,
            expected_month="2025-12",
            expected_usage=2,
            new_usage=3,
            new_month="2025-12",
            updated_at=NOW,
            commit_self=False,
        )

        assert updated is True
        row = await api_key_db.get_by_key(db_session, api_key.key)
        assert row.current_usage == 3
        assert row.last_reset_month == "2025-12"

    @pytest.mark.asyncio
    async def test_matches_never_reset_row(self, db_session, make_api_key):
        api_key = await make_api_key(current_usage=0, last_reset_month=None)

        updated = await api_key_db.update_usage_if_unchanged(
            db_session,
            key=api_key.key,
            expected_month=None,
            expected_usage=0,
            new_usage=1,
            new_month="2025-12",
            updated_at=NOW,
            commit_self=False,
        )

        assert updated is True
        row = await api_key_db.get_by_key(db_session, api_key.key)
        assert row.current_usage == 1
        assert row.last_reset_month == "2025-12"

    @pytest.mark.asyncio
    async def test_rejects_when_usage_moved(self, db_session, make_api_key):
        api_key = await make_api_key(current_usage=3, last_reset_month="2025-12")

        updated = await api_key_db.update_usage_if_unchanged(
            db_session,
            key=api_key.key,
            expected_month="2025-12",
            expected_usage=2,
            new_usage=3,
            new_month="2025-12",
            updated_at=NOW,
            commit_self=False,
        )

        assert updated is False
        row = await api_key_db.get_by_key(db_session, api_key.key)
        assert row.current_usage == 3

    @pytest.mark.asyncio
    async def test_rejects_when_month_moved(self, db_session, make_api_key):
        api_key = await make_api_key(current_usage=1, last_reset_month="2025-12")

        updated = await api_key_db.update_usage_if_unchanged(
            db_session,
            key=api_key.key,
            expected_month="2025-11",
            expected_usage=1,
            new_usage=1,
            new_month="2025-12",
            updated_at=NOW,
            commit_self=False,
        )

        assert updated is False

    @pytest.mark.asyncio
    async def test_second_swap_on_same_read_loses(self, db_session, make_api_key):
        api_key = await make_api_key(current_usage=0, last_reset_month="2025-12")
        swap = dict(
            key=api_key.key,
            expected_month="2025-12",
            expected_usage=0,
            new_usage=1,
            new_month="2025-12",
            updated_at=NOW,
            commit_self=False,
        )

        first = await api_key_db.update_usage_if_unchanged(db_session, **swap)
        second = await api_key_db.update_usage_if_unchanged(db_session, **swap)

        assert (first, second) == (True, False)


class TestOwnerScopedOperations:

    @pytest.mark.asyncio
    async def test_list_for_owner_newest_first(
        self, db_session, make_api_key, owner_id
    ):
        older = await make_api_key(name="older", created_at=NOW - timedelta(days=1))
        newer = await make_api_key(name="newer", created_at=NOW)
        await make_api_key(user_id=uuid4(), name="someone else")

        keys = await api_key_db.list_for_owner(db_session, owner_id)

        assert [k.id for k in keys] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_get_for_owner(self, db_session, make_api_key, owner_id):
        api_key = await make_api_key()

        assert (await api_key_db.get_for_owner(db_session, api_key.id, owner_id)).id == api_key.id
        assert await api_key_db.get_for_owner(db_session, api_key.id, uuid4()) is None

    @pytest.mark.asyncio
    async def test_update_for_owner(self, db_session, make_api_key, owner_id):
        api_key = await make_api_key(name="before")

        updated = await api_key_db.update_for_owner(
            db_session, api_key.id, owner_id, {"name": "after"}, commit_self=False
        )

        assert updated.name == "after"

    @pytest.mark.asyncio
    async def test_update_for_other_owner_is_none(self, db_session, make_api_key):
        api_key = await make_api_key(name="before")

        updated = await api_key_db.update_for_owner(
            db_session, api_key.id, uuid4(), {"name": "after"}, commit_self=False
        )

        assert updated is None

    @pytest.mark.asyncio
    async def test_delete_for_owner_removes_row(
        self, db_session, make_api_key, owner_id
    ):
        api_key = await make_api_key()

        deleted = await api_key_db.delete_for_owner(
            db_session, api_key.id, owner_id, commit_self=False
        )

        assert deleted.id == api_key.id
        result = await db_session.execute(select(ApiKey).where(ApiKey.id == api_key.id))
        assert result.scalar_one_or_none() is None

    @pytest.mark.asyncio
    async def test_delete_for_other_owner_is_none(self, db_session, make_api_key):
        api_key = await make_api_key()

        deleted = await api_key_db.delete_for_owner(
            db_session, api_key.id, uuid4(), commit_self=False
        )

        assert deleted is None
