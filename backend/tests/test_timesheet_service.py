"""
AtlasPM Backend — Timesheet Service Tests
==========================================

What we test:
    ✅ Create: ULID id, embedded relations, all four link rows written
    ✅ Membership: user must be assigned, client must be on the project
    ✅ Missing references are BadRequestErrors
    ✅ A user's day is capped at 1440 minutes (the entry itself excluded on update)
    ✅ Update keeps link tables in step, and a bad activity changes nothing
    ✅ Date-range listing and 404 for ids that are not ULIDs
"""

from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy import select

from atlaspm.exceptions import BadRequestError, EditConflictError, NotFoundError, ValidationError
from atlaspm.models.ids import is_ulid
from atlaspm.models.timesheet import timesheet_activity, timesheet_client
from atlaspm.schemas.project import AssignmentInput, ProjectCreate, ProjectUpdate
from atlaspm.schemas.timesheet import TimesheetCreate, TimesheetQuery, TimesheetUpdate
from atlaspm.services.pagination import ListParams
from atlaspm.services.project_service import project_service
from atlaspm.services.timesheet_service import timesheet_service

MONDAY = date(2024, 3, 4)


@pytest_asyncio.fixture
async def project(database, seed):
    """Project 24001, run for Acme, with Ada assigned as surveyor."""
    async with database.session() as db:
        return await project_service.create_project(
            db,
            ProjectCreate(
                project_id=24001,
                proposal_id="P001-24",
                name="Harbour survey",
                status="active",
                client_names=["Acme"],
                assignments=[AssignmentInput(employee_id=seed.ada.id, role_id=seed.surveyor.id)],
            ),
        )


def entry(seed, **overrides) -> TimesheetCreate:
    data = dict(
        user_id=seed.ada.id,
        project_id=24001,
        client_id=seed.acme.id,
        activity_id=seed.fieldwork.id,
        work_date=MONDAY,
        work_mins=480,
        description="site walk",
    )
    data.update(overrides)
    return TimesheetCreate(**data)


async def create(database, payload):
    async with database.session() as db:
        return await timesheet_service.create_timesheet(db, payload)


async def update(database, timesheet_id, **fields):
    async with database.session() as db:
        return await timesheet_service.update_timesheet(db, timesheet_id, TimesheetUpdate(**fields))


async def links(database, table, timesheet_id):
    async with database.session() as db:
        result = await db.execute(
            select(table).where(table.c.timesheet_id == timesheet_id)
        )
        return [tuple(row)[1:] for row in result.all()]


class TestCreateTimesheet:

    @pytest.mark.asyncio
    async def test_create(self, database, seed, project):
        ts = await create(database, entry(seed))

        assert is_ulid(ts.id)
        assert ts.version == 1
        assert ts.user.email == "ada@example.com"
        assert ts.project.project_id == 24001
        assert ts.client.name == "Acme"
        assert ts.activity.name == "Fieldwork"
        assert ts.work_mins == 480
        assert await links(database, timesheet_client, ts.id) == [(seed.acme.id,)]
        assert await links(database, timesheet_activity, ts.id) == [(seed.fieldwork.id,)]

    @pytest.mark.asyncio
    async def test_unassigned_user(self, database, seed, project):
        with pytest.raises(ValidationError) as exc_info:
            await create(database, entry(seed, user_id=seed.alan.id))
        assert exc_info.value.fields == {"employee_id": "not assigned to the project"}

    @pytest.mark.asyncio
    async def test_client_not_on_project(self, database, seed, project):
        with pytest.raises(ValidationError) as exc_info:
            await create(database, entry(seed, client_id=seed.skynet.id))
        assert exc_info.value.fields == {"client_id": "not associated with the project"}

    @pytest.mark.asyncio
    async def test_missing_activity(self, database, seed, project):
        with pytest.raises(BadRequestError, match="activity 999 does not exist"):
            await create(database, entry(seed, activity_id=999))

    @pytest.mark.asyncio
    async def test_missing_project(self, database, seed, project):
        with pytest.raises(BadRequestError, match="project 77777 does not exist"):
            await create(database, entry(seed, project_id=77777))

    @pytest.mark.asyncio
    async def test_day_total_capped(self, database, seed, project):
        await create(database, entry(seed, work_mins=1000))
        await create(database, entry(seed, work_mins=440))

        with pytest.raises(ValidationError) as exc_info:
            await create(database, entry(seed, work_mins=1))
        assert "work_mins" in exc_info.value.fields

        # another day is unaffected
        await create(database, entry(seed, work_date=date(2024, 3, 5), work_mins=1))


class TestUpdateTimesheet:

    @pytest.mark.asyncio
    async def test_change_client_moves_link(self, database, seed, project):
        ts = await create(database, entry(seed))
        await _link_skynet(database)

        updated = await update(database, ts.id, client_id=seed.skynet.id, version=1)

        assert updated.version == 2
        assert updated.client.name == "Skynet"
        assert await links(database, timesheet_client, ts.id) == [(seed.skynet.id,)]

    @pytest.mark.asyncio
    async def test_client_not_on_project(self, database, seed, project):
        ts = await create(database, entry(seed))
        with pytest.raises(ValidationError) as exc_info:
            await update(database, ts.id, client_id=seed.skynet.id)
        assert "client_id" in exc_info.value.fields

    @pytest.mark.asyncio
    async def test_unknown_activity_changes_nothing(self, database, seed, project):
        ts = await create(database, entry(seed))

        with pytest.raises(BadRequestError):
            await update(database, ts.id, activity_id=999, description="moved")

        async with database.session() as db:
            stored = await timesheet_service.get_timesheet(db, ts.id)
        assert stored.version == 1
        assert stored.description == "site walk"
        assert await links(database, timesheet_activity, ts.id) == [(seed.fieldwork.id,)]

    @pytest.mark.asyncio
    async def test_own_minutes_do_not_count_twice(self, database, seed, project):
        ts = await create(database, entry(seed, work_mins=1000))
        updated = await update(database, ts.id, work_mins=1440)
        assert updated.work_mins == 1440

    @pytest.mark.asyncio
    async def test_stale_version(self, database, seed, project):
        ts = await create(database, entry(seed))
        await update(database, ts.id, description="first", version=1)

        with pytest.raises(EditConflictError):
            await update(database, ts.id, description="second", version=1)

    @pytest.mark.asyncio
    async def test_not_a_ulid(self, database, seed):
        with pytest.raises(NotFoundError):
            await update(database, "not-a-ulid", description="x")
        async with database.session() as db:
            with pytest.raises(NotFoundError):
                await timesheet_service.get_timesheet(db, "12345")


class TestListAndDelete:

    @pytest.mark.asyncio
    async def test_date_range_narrows(self, database, seed, project):
        for day in (4, 5, 6, 7):
            await create(database, entry(seed, work_date=date(2024, 3, day), work_mins=60))

        async with database.session() as db:
            timesheets, metadata = await timesheet_service.list_timesheets(
                db,
                ListParams(sort="work_date"),
                TimesheetQuery(from_date=date(2024, 3, 5), to_date=date(2024, 3, 6)),
            )

        assert [t.work_date.day for t in timesheets] == [5, 6]
        assert metadata.total_records == 2

    @pytest.mark.asyncio
    async def test_filter_by_email(self, database, seed, project):
        await create(database, entry(seed))
        async with database.session() as db:
            found, _ = await timesheet_service.list_timesheets(
                db, ListParams(), TimesheetQuery(email="ADA@")
            )
            missing, metadata = await timesheet_service.list_timesheets(
                db, ListParams(), TimesheetQuery(email="alan@")
            )
        assert len(found) == 1
        assert missing == []
        assert metadata.total_records is None

    @pytest.mark.asyncio
    async def test_delete(self, database, seed, project):
        ts = await create(database, entry(seed))
        async with database.session() as db:
            await timesheet_service.delete_timesheet(db, ts.id)
        assert await links(database, timesheet_client, ts.id) == []
        async with database.session() as db:
            with pytest.raises(NotFoundError):
                await timesheet_service.get_timesheet(db, ts.id)


async def _link_skynet(database):
    async with database.session() as db:
        await project_service.update_project(
            db, 24001, ProjectUpdate(client_names=["Acme", "Skynet"])
        )
