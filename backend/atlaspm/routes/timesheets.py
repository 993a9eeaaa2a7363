"""
AtlasPM Backend — Timesheet Route Handlers
===========================================

What:  /v1/timesheet endpoints. Entries are addressed by their ULID.

Listing example:
    GET /v1/timesheet?user_id=k3x9a2mq&from_date=2024-03-01&to_date=2024-03-31&sort=work_date

The filter set is parsed into a TimesheetQuery model, so a from_date after
to_date is rejected with 422 before the service runs.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.database import get_db_session
from atlaspm.routes.common import ITEM_ERRORS, UPDATE_ERRORS, WRITE_ERRORS, list_params, set_total_count
from atlaspm.schemas.common import MessageResponse
from atlaspm.schemas.timesheet import (
    TimesheetCreate,
    TimesheetEnvelope,
    TimesheetListEnvelope,
    TimesheetQuery,
    TimesheetUpdate,
)
from atlaspm.services.pagination import ListParams
from atlaspm.services.timesheet_service import timesheet_service

router = APIRouter(prefix="/v1", tags=["Timesheets"])


@router.get(
    "/timesheet",
    response_model=TimesheetListEnvelope,
    summary="List timesheet entries",
    description=(
        "User, project, activity and work_date filters are OR-combined; the "
        "from_date/to_date range always narrows the result."
    ),
)
async def list_timesheets(
    response: Response,
    query: Annotated[TimesheetQuery, Query()],
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db_session),
) -> TimesheetListEnvelope:
    timesheets, metadata = await timesheet_service.list_timesheets(db, params, query)
    set_total_count(response, metadata)
    return TimesheetListEnvelope(metadata=metadata, timesheets=timesheets)


@router.post(
    "/timesheet",
    response_model=TimesheetEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Book time",
    description=(
        "The user must be assigned to the project, the client must be one of "
        "the project's clients, and the user's minutes for the day may not "
        "exceed 1440."
    ),
)
async def create_timesheet(
    payload: TimesheetCreate,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> TimesheetEnvelope:
    timesheet = await timesheet_service.create_timesheet(db, payload)
    response.headers["Location"] = f"/v1/timesheet/{timesheet.id}"
    return TimesheetEnvelope(timesheet=timesheet)


@router.get(
    "/timesheet/{timesheet_id}",
    response_model=TimesheetEnvelope,
    responses=ITEM_ERRORS,
    summary="Get a timesheet entry",
)
async def get_timesheet(timesheet_id: str, db: AsyncSession = Depends(get_db_session)) -> TimesheetEnvelope:
    timesheet = await timesheet_service.get_timesheet(db, timesheet_id)
    return TimesheetEnvelope(timesheet=timesheet)


@router.patch(
    "/timesheet/{timesheet_id}",
    response_model=TimesheetEnvelope,
    responses=UPDATE_ERRORS,
    summary="Partially update a timesheet entry",
)
async def update_timesheet(
    timesheet_id: str,
    payload: TimesheetUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> TimesheetEnvelope:
    timesheet = await timesheet_service.update_timesheet(db, timesheet_id, payload)
    return TimesheetEnvelope(timesheet=timesheet)


@router.delete(
    "/timesheet/{timesheet_id}",
    response_model=MessageResponse,
    responses=ITEM_ERRORS,
    summary="Delete a timesheet entry",
)
async def delete_timesheet(timesheet_id: str, db: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await timesheet_service.delete_timesheet(db, timesheet_id)
    return MessageResponse(message="timesheet successfully deleted")
