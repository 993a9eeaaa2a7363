"""CRUD for activities (kinds of billable work timesheets are booked against)."""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.exceptions import NotFoundError
from atlaspm.models.activity import Activity
from atlaspm.schemas.activity import ActivityCreate, ActivityUpdate
from atlaspm.schemas.common import PageMetadata, patch_fields
from atlaspm.services.orchestrator import UpdateOrchestrator
from atlaspm.services.pagination import ListParams, paginate
from atlaspm.services.transaction import store_operation

logger = logging.getLogger(__name__)

SORT_COLUMNS = {"id": Activity.id, "name": Activity.name}
DUPLICATES = {"name": "an activity with this name already exists"}


class ActivityService:

    @store_operation("activity", duplicates=DUPLICATES)
    async def create_activity(self, db: AsyncSession, payload: ActivityCreate) -> Activity:
        async with db.begin():
            activity = Activity(name=payload.name)
            db.add(activity)
            await db.flush()
        logger.info("Activity created: %s (%s)", activity.id, activity.name)
        return activity

    @store_operation("activity")
    async def get_activity(self, db: AsyncSession, activity_id: int) -> Activity:
        async with db.begin():
            activity = await db.get(Activity, activity_id)
        if activity is None:
            raise NotFoundError(resource="activity", resource_id=activity_id)
        return activity

    @store_operation("activity")
    async def list_activities(
        self, db: AsyncSession, params: ListParams, name: Optional[str] = None
    ) -> Tuple[List[Activity], PageMetadata]:
        stmt = select(Activity)
        if name:
            stmt = stmt.where(Activity.name.ilike(f"%{name}%"))
        async with db.begin():
            return await paginate(db, stmt, params, SORT_COLUMNS, "id", Activity.id)

    @store_operation("activity", duplicates=DUPLICATES)
    async def update_activity(
        self, db: AsyncSession, activity_id: int, payload: ActivityUpdate
    ) -> Activity:
        changes, expected = patch_fields(payload)
        async with UpdateOrchestrator(db, "activity") as op:
            activity = await db.get(Activity, activity_id)
            if activity is None:
                raise NotFoundError(resource="activity", resource_id=activity_id)
            await op.apply(Activity, activity_id, expected or activity.version, changes)
            await db.refresh(activity)
        logger.info("Activity %s updated to version %d", activity_id, activity.version)
        return activity

    @store_operation("activity")
    async def delete_activity(self, db: AsyncSession, activity_id: int) -> None:
        async with db.begin():
            result = await db.execute(delete(Activity).where(Activity.id == activity_id))
            if result.rowcount == 0:
                raise NotFoundError(resource="activity", resource_id=activity_id)
        logger.info("Activity %s deleted", activity_id)


activity_service = ActivityService()
