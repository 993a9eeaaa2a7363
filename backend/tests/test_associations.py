"""
AtlasPM Backend — Association Synchronizer Tests
=================================================

Runs against SQLite so the dialect-specific ON CONFLICT DO NOTHING insert
and the composite-key delete are exercised for real.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from atlaspm.models.project import project_client
from atlaspm.schemas.project import AssignmentInput, ProjectCreate
from atlaspm.services.associations import Association, current_targets, reconcile
from atlaspm.services.project_service import PROJECT_ASSIGNMENTS, PROJECT_CLIENTS, project_service


async def _project(database, seed, **overrides):
    payload = dict(
        project_id=24001,
        proposal_id="P001-24",
        name="Harbour survey",
        status="active",
        client_names=["Acme"],
    )
    payload.update(overrides)
    async with database.session() as db:
        created = await project_service.create_project(db, ProjectCreate(**payload))
    async with database.session() as db:
        async with db.begin():
            return await project_service._find(db, created.project_id)


class TestAssociationDescriptor:

    def test_single_column_normalizes_to_values(self):
        assoc = Association("clients", project_client, "project_internal_id", ("client_id",))
        assert not assoc.is_composite
        assert assoc.normalize([1, 2, 2]) == frozenset({1, 2})

    def test_composite_normalizes_to_tuples(self):
        assert PROJECT_ASSIGNMENTS.is_composite
        assert PROJECT_ASSIGNMENTS.normalize([["a", 1], ("a", 1)]) == frozenset({("a", 1)})


class TestReconcile:

    @pytest.mark.asyncio
    async def test_adds_and_removes(self, database, seed):
        project = await _project(database, seed)

        async with database.session() as db:
            async with db.begin():
                result = await reconcile(
                    db, PROJECT_CLIENTS, project.internal_id, [seed.skynet.id]
                )
                stored = await current_targets(db, PROJECT_CLIENTS, project.internal_id)

        assert result.added == frozenset({seed.skynet.id})
        assert result.removed == frozenset({seed.acme.id})
        assert stored == frozenset({seed.skynet.id})

    @pytest.mark.asyncio
    async def test_same_set_twice_is_a_no_op(self, database, seed):
        project = await _project(database, seed)
        desired = [seed.acme.id, seed.skynet.id]

        async with database.session() as db:
            async with db.begin():
                first = await reconcile(db, PROJECT_CLIENTS, project.internal_id, desired)
                second = await reconcile(db, PROJECT_CLIENTS, project.internal_id, desired)
                stored = await current_targets(db, PROJECT_CLIENTS, project.internal_id)

        assert first.changed
        assert not second.changed
        assert stored == frozenset(desired)

    @pytest.mark.asyncio
    async def test_none_leaves_rows_untouched(self, database, seed):
        project = await _project(database, seed)

        async with database.session() as db:
            async with db.begin():
                result = await reconcile(db, PROJECT_CLIENTS, project.internal_id, None)
                stored = await current_targets(db, PROJECT_CLIENTS, project.internal_id)

        assert result.skipped
        assert stored == frozenset({seed.acme.id})

    @pytest.mark.asyncio
    async def test_empty_list_removes_everything(self, database, seed):
        project = await _project(
            database,
            seed,
            assignments=[AssignmentInput(employee_id=seed.ada.id, role_id=seed.surveyor.id)],
        )

        async with database.session() as db:
            async with db.begin():
                result = await reconcile(db, PROJECT_ASSIGNMENTS, project.internal_id, [])
                stored = await current_targets(db, PROJECT_ASSIGNMENTS, project.internal_id)

        assert result.removed == frozenset({(seed.ada.id, seed.surveyor.id)})
        assert stored == frozenset()

    @pytest.mark.asyncio
    async def test_composite_targets_swap_one_pair(self, database, seed):
        project = await _project(
            database,
            seed,
            assignments=[
                AssignmentInput(employee_id=seed.ada.id, role_id=seed.surveyor.id),
                AssignmentInput(employee_id=seed.alan.id, role_id=seed.surveyor.id),
            ],
        )
        desired = [(seed.ada.id, seed.surveyor.id), (seed.alan.id, seed.manager.id)]

        async with database.session() as db:
            async with db.begin():
                result = await reconcile(db, PROJECT_ASSIGNMENTS, project.internal_id, desired)
                stored = await current_targets(db, PROJECT_ASSIGNMENTS, project.internal_id)

        assert result.added == frozenset({(seed.alan.id, seed.manager.id)})
        assert result.removed == frozenset({(seed.alan.id, seed.surveyor.id)})
        assert stored == frozenset(desired)

    @pytest.mark.asyncio
    async def test_unknown_target_raises_integrity_error(self, database, seed):
        project = await _project(database, seed)

        async with database.session() as db:
            with pytest.raises(IntegrityError):
                async with db.begin():
                    await reconcile(db, PROJECT_CLIENTS, project.internal_id, [99999])
