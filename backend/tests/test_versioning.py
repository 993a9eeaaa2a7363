"""
AtlasPM Backend — Version Guard Tests
======================================

What we test:
    ✅ A matching version bumps the counter and returns the new stamp
    ✅ A stale version raises EditConflictError (never NotFound, never 500)
    ✅ A caller-supplied "version" value cannot override the increment
    ✅ Against SQLite: 1 → 2, then a second write at 1 conflicts
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from atlaspm.exceptions import EditConflictError
from atlaspm.models.client import Client
from atlaspm.models.project import Project
from atlaspm.schemas.client import ClientCreate
from atlaspm.services.client_service import client_service
from atlaspm.services.versioning import VersionStamp, guarded_update, primary_key_column

NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


def returning(row):
    """Result double for UPDATE ... RETURNING; `row=None` means no match."""
    result = MagicMock()
    result.first.return_value = row
    return result


class TestGuardedUpdateUnit:

    @pytest.mark.asyncio
    async def test_match_returns_new_stamp(self, mock_db_session):
        mock_db_session.execute.return_value = returning((2, NOW))

        stamp = await guarded_update(mock_db_session, Client, 7, 1, {"name": "Acme Pty"}, now=NOW)

        assert stamp == VersionStamp(version=2, updated_at=NOW)
        mock_db_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_row_is_edit_conflict(self, mock_db_session):
        mock_db_session.execute.return_value = returning(None)

        with pytest.raises(EditConflictError) as exc_info:
            await guarded_update(mock_db_session, Client, 7, 3, {"name": "Acme Pty"})

        assert exc_info.value.context["expected_version"] == 3
        assert exc_info.value.context["resource"] == "client"
        assert "edit conflict" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_resource_label_used_in_conflict(self, mock_db_session):
        mock_db_session.execute.return_value = returning(None)

        with pytest.raises(EditConflictError) as exc_info:
            await guarded_update(mock_db_session, Project, 1, 1, resource="project")

        assert exc_info.value.resource == "project"

    @pytest.mark.asyncio
    async def test_version_in_values_is_ignored(self, mock_db_session):
        mock_db_session.execute.return_value = returning((5, NOW))

        await guarded_update(mock_db_session, Client, 7, 4, {"version": 99, "note": "x"}, now=NOW)

        stmt = mock_db_session.execute.call_args.args[0]
        params = stmt.compile().params
        assert 99 not in params.values()
        assert params["note"] == "x"

    def test_primary_key_column(self):
        assert primary_key_column(Project).name == "internal_id"
        assert primary_key_column(Client).name == "id"


class TestGuardedUpdateSQLite:

    @pytest.mark.asyncio
    async def test_second_write_with_same_version_conflicts(self, database):
        async with database.session() as db:
            client = await client_service.create_client(db, ClientCreate(name="Acme"))

        async with database.session() as db:
            async with db.begin():
                stamp = await guarded_update(db, Client, client.id, 1, {"note": "first"})
        assert stamp.version == 2

        async with database.session() as db:
            with pytest.raises(EditConflictError):
                async with db.begin():
                    await guarded_update(db, Client, client.id, 1, {"note": "second"})

        async with database.session() as db:
            stored = await client_service.get_client(db, client.id)
        assert stored.version == 2
        assert stored.note == "first"

    @pytest.mark.asyncio
    async def test_missing_row_is_edit_conflict(self, database):
        async with database.session() as db:
            with pytest.raises(EditConflictError):
                async with db.begin():
                    await guarded_update(db, Client, 12345, 1, {"note": "ghost"})
