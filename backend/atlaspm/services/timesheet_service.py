"""
AtlasPM Backend — Timesheet Service
====================================

What:  CRUD for timesheet entries (minutes booked by a user against a
       project, client and activity on one day).
Why:   Timesheets feed billing, so every entry must point at a real
       project the user is assigned to, through a client that project is
       run for, and no user can book more than a day's worth of minutes.

Checks on create:
    ┌──────────────────────┐     ┌────────────────────────┐     ┌──────────────────┐
    │ project, client,     │──▶  │ user assigned to the   │──▶  │ day total        │
    │ user, activity exist │     │ project, client linked │     │ <= 1440 minutes  │
    └──────────────────────┘     └────────────────────────┘     └──────────────────┘
      BadRequestError (400)         ValidationError (422)         ValidationError (422)

Update re-runs the membership and day-total checks against the effective
values (stored value unless the PATCH changes it). The activity is not
looked up first: the foreign key rejects an unknown one and the store
boundary reports it as a BadRequestError.

Every write keeps the four link tables (`timesheet_project`, `_client`,
`_appuser`, `_activity`) equal to the row's own references.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, delete, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.exceptions import BadRequestError, NotFoundError, ValidationError
from atlaspm.models.activity import Activity
from atlaspm.models.client import Client
from atlaspm.models.ids import is_ulid
from atlaspm.models.project import Project, assignment, project_client
from atlaspm.models.timesheet import (
    MAX_WORK_MINUTES,
    Timesheet,
    timesheet_activity,
    timesheet_appuser,
    timesheet_client,
    timesheet_project,
)
from atlaspm.models.user import AppUser
from atlaspm.schemas.common import PageMetadata, patch_fields
from atlaspm.schemas.timesheet import (
    TimesheetActivity,
    TimesheetClient,
    TimesheetCreate,
    TimesheetProject,
    TimesheetQuery,
    TimesheetResponse,
    TimesheetUpdate,
    TimesheetUser,
)
from atlaspm.services.associations import Association, reconcile
from atlaspm.services.orchestrator import UpdateOrchestrator
from atlaspm.services.pagination import ListParams, paginate
from atlaspm.services.transaction import store_operation

logger = logging.getLogger(__name__)

TIMESHEET_PROJECT = Association("project", timesheet_project, "timesheet_id", ("project_internal_id",))
TIMESHEET_CLIENT = Association("client", timesheet_client, "timesheet_id", ("client_id",))
TIMESHEET_APPUSER = Association("user", timesheet_appuser, "timesheet_id", ("appuser_id",))
TIMESHEET_ACTIVITY = Association("activity", timesheet_activity, "timesheet_id", ("activity_id",))

SORT_COLUMNS = {
    "id": Timesheet.id,
    "project_id": Project.project_id,
    "work_date": Timesheet.work_date,
}

# API field → column
_COLUMNS = {
    "user_id": "appuser_id",
    "client_id": "client_id",
    "activity_id": "activity_id",
    "work_date": "work_date",
    "work_mins": "work_minutes",
    "description": "description",
    "status": "status",
}


def _links(timesheet: Timesheet) -> Dict[Association, List[Any]]:
    return {
        TIMESHEET_PROJECT: [timesheet.project_internal_id],
        TIMESHEET_CLIENT: [timesheet.client_id],
        TIMESHEET_APPUSER: [timesheet.appuser_id],
        TIMESHEET_ACTIVITY: [timesheet.activity_id],
    }


def _filter_conditions(query: TimesheetQuery) -> Tuple[list, list]:
    """(OR-combined matches, AND-combined date range)"""
    matches = []
    if query.user_id:
        matches.append(Timesheet.appuser_id == query.user_id)
    if query.email:
        matches.append(AppUser.email.ilike(f"%{query.email}%"))
    if query.first_name:
        matches.append(AppUser.first_name.ilike(f"%{query.first_name}%"))
    if query.last_name:
        matches.append(AppUser.last_name.ilike(f"%{query.last_name}%"))
    if query.project_id:
        matches.append(Project.project_id == query.project_id)
    if query.project_name:
        matches.append(Project.name.ilike(f"%{query.project_name}%"))
    if query.activity_id:
        matches.append(Timesheet.activity_id == query.activity_id)
    if query.activity_name:
        matches.append(Activity.name.ilike(f"%{query.activity_name}%"))
    if query.work_date:
        matches.append(Timesheet.work_date == query.work_date)

    window = []
    if query.from_date:
        window.append(Timesheet.work_date >= query.from_date)
    if query.to_date:
        window.append(Timesheet.work_date <= query.to_date)
    return matches, window


class TimesheetService:

    @staticmethod
    def _check_id(timesheet_id: str) -> None:
        """Anything that is not a ULID cannot name a timesheet."""
        if not is_ulid(timesheet_id):
            raise NotFoundError(resource="timesheet", resource_id=timesheet_id)

    # ── Reference checks ──────────────────────────────────────────────────

    async def _project_by_number(self, db: AsyncSession, project_id: int) -> Project:
        result = await db.execute(select(Project).where(Project.project_id == project_id))
        project = result.scalar_one_or_none()
        if project is None:
            raise BadRequestError(message=f"project {project_id} does not exist")
        return project

    async def _check_references(self, db: AsyncSession, payload: TimesheetCreate) -> Project:
        """Project, client, user and activity must all exist."""
        project = await self._project_by_number(db, payload.project_id)
        if await db.get(Client, payload.client_id) is None:
            raise BadRequestError(message=f"client {payload.client_id} does not exist")
        if await db.get(AppUser, payload.user_id) is None:
            raise BadRequestError(message=f"user {payload.user_id} does not exist")
        if await db.get(Activity, payload.activity_id) is None:
            raise BadRequestError(message=f"activity {payload.activity_id} does not exist")
        return project

    async def _check_membership(
        self, db: AsyncSession, user_id: str, project_internal_id: int, client_id: int
    ) -> None:
        assigned = await db.scalar(
            select(
                exists().where(
                    and_(
                        assignment.c.project_internal_id == project_internal_id,
                        assignment.c.employee_id == user_id,
                    )
                )
            )
        )
        if not assigned:
            raise ValidationError(field="employee_id", message="not assigned to the project")

        linked = await db.scalar(
            select(
                exists().where(
                    and_(
                        project_client.c.project_internal_id == project_internal_id,
                        project_client.c.client_id == client_id,
                    )
                )
            )
        )
        if not linked:
            raise ValidationError(field="client_id", message="not associated with the project")

    async def _check_day_total(
        self,
        db: AsyncSession,
        user_id: str,
        work_date: date,
        minutes: int,
        exclude_id: Optional[str] = None,
    ) -> None:
        stmt = select(func.coalesce(func.sum(Timesheet.work_minutes), 0)).where(
            Timesheet.appuser_id == user_id,
            Timesheet.work_date == work_date,
        )
        if exclude_id is not None:
            stmt = stmt.where(Timesheet.id != exclude_id)
        booked = await db.scalar(stmt)
        if booked + minutes > MAX_WORK_MINUTES:
            raise ValidationError(
                field="work_mins",
                message=f"total work minutes for {work_date.isoformat()} would exceed {MAX_WORK_MINUTES}",
            )

    # ── Response building ─────────────────────────────────────────────────

    async def _responses(self, db: AsyncSession, timesheets: List[Timesheet]) -> List[TimesheetResponse]:
        """Embed user, project, client and activity, one query per page."""
        if not timesheets:
            return []
        rows = await db.execute(
            select(Timesheet.id, AppUser, Project, Client, Activity)
            .join(AppUser, AppUser.id == Timesheet.appuser_id)
            .join(Project, Project.internal_id == Timesheet.project_internal_id)
            .join(Client, Client.id == Timesheet.client_id)
            .join(Activity, Activity.id == Timesheet.activity_id)
            .where(Timesheet.id.in_([t.id for t in timesheets]))
        )
        related = {row[0]: row[1:] for row in rows.all()}

        responses = []
        for ts in timesheets:
            user, project, client, activity = related[ts.id]
            responses.append(
                TimesheetResponse(
                    id=ts.id,
                    user=TimesheetUser(
                        id=user.id,
                        email=user.email,
                        first_name=user.first_name,
                        last_name=user.last_name,
                    ),
                    project=TimesheetProject(
                        project_id=project.project_id, name=project.name, status=project.status
                    ),
                    client=TimesheetClient(id=client.id, name=client.name),
                    activity=TimesheetActivity(id=activity.id, name=activity.name),
                    work_date=ts.work_date,
                    work_mins=ts.work_minutes,
                    description=ts.description,
                    status=ts.status,
                    version=ts.version,
                    created_at=ts.created_at,
                    updated_at=ts.updated_at,
                )
            )
        return responses

    # ── Operations ────────────────────────────────────────────────────────

    @store_operation("timesheet")
    async def create_timesheet(self, db: AsyncSession, payload: TimesheetCreate) -> TimesheetResponse:
        """
        Book minutes for a user.

        Raises:
            BadRequestError: Referenced project/client/user/activity missing
            ValidationError: Not assigned, client not on project, or day full
        """
        async with db.begin():
            project = await self._check_references(db, payload)
            await self._check_membership(db, payload.user_id, project.internal_id, payload.client_id)
            await self._check_day_total(db, payload.user_id, payload.work_date, payload.work_mins)

            timesheet = Timesheet(
                appuser_id=payload.user_id,
                project_internal_id=project.internal_id,
                client_id=payload.client_id,
                activity_id=payload.activity_id,
                work_date=payload.work_date,
                work_minutes=payload.work_mins,
                description=payload.description,
                status=payload.status,
            )
            db.add(timesheet)
            await db.flush()

            for assoc, targets in _links(timesheet).items():
                await reconcile(db, assoc, timesheet.id, targets)

            response = (await self._responses(db, [timesheet]))[0]

        logger.info(
            "Timesheet %s created: %s booked %d min on project %s",
            timesheet.id, payload.user_id, payload.work_mins, payload.project_id,
        )
        return response

    @store_operation("timesheet")
    async def get_timesheet(self, db: AsyncSession, timesheet_id: str) -> TimesheetResponse:
        self._check_id(timesheet_id)
        async with db.begin():
            timesheet = await db.get(Timesheet, timesheet_id)
            if timesheet is None:
                raise NotFoundError(resource="timesheet", resource_id=timesheet_id)
            return (await self._responses(db, [timesheet]))[0]

    @store_operation("timesheet")
    async def list_timesheets(
        self,
        db: AsyncSession,
        params: ListParams,
        query: Optional[TimesheetQuery] = None,
    ) -> Tuple[List[TimesheetResponse], PageMetadata]:
        """
        Filters are OR-combined; the from/to date range always narrows.
        """
        matches, window = _filter_conditions(query or TimesheetQuery())
        stmt = (
            select(Timesheet)
            .join(AppUser, AppUser.id == Timesheet.appuser_id)
            .join(Project, Project.internal_id == Timesheet.project_internal_id)
            .join(Activity, Activity.id == Timesheet.activity_id)
        )
        if matches:
            stmt = stmt.where(or_(*matches))
        if window:
            stmt = stmt.where(*window)

        async with db.begin():
            timesheets, metadata = await paginate(
                db, stmt, params, SORT_COLUMNS, "id", Timesheet.id
            )
            return await self._responses(db, timesheets), metadata

    @store_operation("timesheet")
    async def update_timesheet(
        self, db: AsyncSession, timesheet_id: str, payload: TimesheetUpdate
    ) -> TimesheetResponse:
        """
        Partial update; the row, its version and all four link tables
        change in one transaction.

        Raises:
            NotFoundError: No such timesheet
            BadRequestError: New project number or activity does not exist
            ValidationError: Membership or day-total check fails
            EditConflictError: Version no longer matches
        """
        self._check_id(timesheet_id)
        changes, expected = patch_fields(payload)

        async with UpdateOrchestrator(db, "timesheet") as op:
            timesheet = await db.get(Timesheet, timesheet_id)
            if timesheet is None:
                raise NotFoundError(resource="timesheet", resource_id=timesheet_id)

            values = {_COLUMNS[k]: v for k, v in changes.items() if k in _COLUMNS}
            if "project_id" in changes:
                project = await self._project_by_number(db, changes["project_id"])
                values["project_internal_id"] = project.internal_id

            user_id = values.get("appuser_id", timesheet.appuser_id)
            project_internal_id = values.get("project_internal_id", timesheet.project_internal_id)
            client_id = values.get("client_id", timesheet.client_id)
            activity_id = values.get("activity_id", timesheet.activity_id)

            if {"appuser_id", "project_internal_id", "client_id"} & values.keys():
                await self._check_membership(db, user_id, project_internal_id, client_id)
            if {"appuser_id", "work_date", "work_minutes"} & values.keys():
                await self._check_day_total(
                    db,
                    user_id,
                    values.get("work_date", timesheet.work_date),
                    values.get("work_minutes", timesheet.work_minutes),
                    exclude_id=timesheet_id,
                )

            await op.apply(
                Timesheet,
                timesheet_id,
                expected or timesheet.version,
                values,
                associations={
                    TIMESHEET_PROJECT: [project_internal_id],
                    TIMESHEET_CLIENT: [client_id],
                    TIMESHEET_APPUSER: [user_id],
                    TIMESHEET_ACTIVITY: [activity_id],
                },
            )
            await db.refresh(timesheet)
            response = (await self._responses(db, [timesheet]))[0]

        logger.info("Timesheet %s updated to version %d", timesheet_id, response.version)
        return response

    @store_operation("timesheet")
    async def delete_timesheet(self, db: AsyncSession, timesheet_id: str) -> None:
        self._check_id(timesheet_id)
        async with db.begin():
            result = await db.execute(delete(Timesheet).where(Timesheet.id == timesheet_id))
            if result.rowcount == 0:
                raise NotFoundError(resource="timesheet", resource_id=timesheet_id)
        logger.info("Timesheet %s deleted", timesheet_id)


timesheet_service = TimesheetService()
