"""
AtlasPM Backend — Update Orchestrator Tests
============================================

What we test:
    ✅ Success commits and ends in COMMITTED
    ✅ A conflict rolls back, ends in ROLLED_BACK and re-raises unchanged
    ✅ A failing COMMIT also ends in ROLLED_BACK
    ✅ apply() twice, or outside the block, is a programming error
    ✅ Omitted associations are reported as skipped
    ✅ Against SQLite: a failing link insert leaves the row's version alone
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from atlaspm.exceptions import EditConflictError
from atlaspm.models.client import Client
from atlaspm.models.project import Project
from atlaspm.schemas.client import ClientCreate
from atlaspm.schemas.project import ProjectCreate
from atlaspm.services.client_service import client_service
from atlaspm.services.orchestrator import UpdateOrchestrator, UpdateState, update_entity
from atlaspm.services.project_service import PROJECT_CLIENTS, project_service

NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


def returning(row):
    """Result double for UPDATE ... RETURNING; `row=None` means no match."""
    result = MagicMock()
    result.first.return_value = row
    return result


class TestOrchestratorStates:

    @pytest.mark.asyncio
    async def test_success_commits(self, mock_db_session):
        mock_db_session.execute.return_value = returning((4, NOW))

        async with UpdateOrchestrator(mock_db_session, "client") as op:
            outcome = await op.apply(Client, 1, 3, {"name": "Acme Pty"})
            assert op.state == UpdateState.ASSOCIATIONS_RECONCILED

        assert outcome.state == UpdateState.COMMITTED
        assert outcome.stamp.version == 4
        mock_db_session.tx.commit.assert_awaited_once()
        mock_db_session.tx.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_conflict_rolls_back_and_propagates(self, mock_db_session):
        mock_db_session.execute.return_value = returning(None)
        op = UpdateOrchestrator(mock_db_session, "client")

        with pytest.raises(EditConflictError):
            async with op:
                await op.apply(Client, 1, 3, {"name": "Acme Pty"})

        assert op.state == UpdateState.ROLLED_BACK
        mock_db_session.tx.rollback.assert_awaited_once()
        mock_db_session.tx.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commit_failure_rolls_back(self, mock_db_session):
        mock_db_session.execute.return_value = returning((4, NOW))
        mock_db_session.tx.commit.side_effect = OperationalError(
            "COMMIT", {}, Exception("could not serialize access")
        )
        op = UpdateOrchestrator(mock_db_session, "client")

        with pytest.raises(OperationalError):
            async with op:
                await op.apply(Client, 1, 3, {"name": "Acme Pty"})

        assert op.state == UpdateState.ROLLED_BACK
        mock_db_session.tx.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_error_before_apply_rolls_back(self, mock_db_session):
        op = UpdateOrchestrator(mock_db_session, "client")

        with pytest.raises(LookupError):
            async with op:
                raise LookupError("row vanished")

        assert op.state == UpdateState.ROLLED_BACK
        mock_db_session.tx.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_apply_twice_is_rejected(self, mock_db_session):
        mock_db_session.execute.return_value = returning((2, NOW))

        with pytest.raises(RuntimeError, match="only be called once"):
            async with UpdateOrchestrator(mock_db_session, "client") as op:
                await op.apply(Client, 1, 1, {"name": "a"})
                await op.apply(Client, 1, 2, {"name": "b"})

        mock_db_session.tx.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_apply_outside_block_is_rejected(self, mock_db_session):
        op = UpdateOrchestrator(mock_db_session, "client")
        with pytest.raises(RuntimeError, match="outside its context"):
            await op.apply(Client, 1, 1, {"name": "a"})

    @pytest.mark.asyncio
    async def test_omitted_association_is_skipped(self, mock_db_session):
        mock_db_session.execute.return_value = returning((2, NOW))

        async with UpdateOrchestrator(mock_db_session, "project") as op:
            outcome = await op.apply(Project, 10, 1, {}, associations={PROJECT_CLIENTS: None})

        # the guarded UPDATE is the only statement issued
        assert mock_db_session.execute.await_count == 1
        assert outcome.reconciled[0].skipped


class TestOrchestratorSQLite:

    @pytest.mark.asyncio
    async def test_update_entity_bumps_version(self, database):
        async with database.session() as db:
            client = await client_service.create_client(db, ClientCreate(name="Acme"))

        async with database.session() as db:
            outcome = await update_entity(db, Client, client.id, 1, {"address": "1 Quay St"})

        assert outcome.state == UpdateState.COMMITTED
        assert outcome.stamp.version == 2

    @pytest.mark.asyncio
    async def test_failed_link_insert_rolls_back_row_update(self, database, seed):
        async with database.session() as db:
            created = await project_service.create_project(
                db,
                ProjectCreate(
                    project_id=24001,
                    proposal_id="P001-24",
                    name="Harbour survey",
                    status="active",
                    client_names=["Acme"],
                ),
            )

        async with database.session() as db:
            async with db.begin():
                project = await project_service._find(db, created.project_id)

        async with database.session() as db:
            with pytest.raises(IntegrityError):
                async with UpdateOrchestrator(db, "project") as op:
                    await op.apply(
                        Project,
                        project.internal_id,
                        1,
                        {"name": "Renamed"},
                        associations={PROJECT_CLIENTS: [seed.acme.id, 99999]},
                    )
            assert op.state == UpdateState.ROLLED_BACK

        async with database.session() as db:
            after = await project_service.get_project(db, 24001)
        assert after.version == 1
        assert after.name == "Harbour survey"
        assert [c.client_name for c in after.clients] == ["Acme"]
