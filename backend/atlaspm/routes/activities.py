"""
AtlasPM Backend — Activity Route Handlers
==========================================

What:  /v1/activity endpoints. Activities classify timesheet entries
       ("Fieldwork", "Drafting").
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.database import get_db_session
from atlaspm.routes.common import ITEM_ERRORS, UPDATE_ERRORS, WRITE_ERRORS, list_params, set_total_count
from atlaspm.schemas.activity import (
    ActivityCreate,
    ActivityEnvelope,
    ActivityListEnvelope,
    ActivityResponse,
    ActivityUpdate,
)
from atlaspm.schemas.common import MessageResponse
from atlaspm.services.activity_service import activity_service
from atlaspm.services.pagination import ListParams

router = APIRouter(prefix="/v1", tags=["Activities"])


@router.get("/activity", response_model=ActivityListEnvelope, summary="List activities")
async def list_activities(
    response: Response,
    params: ListParams = Depends(list_params),
    name: Optional[str] = Query(default=None, description="Substring of the activity name"),
    db: AsyncSession = Depends(get_db_session),
) -> ActivityListEnvelope:
    activities, metadata = await activity_service.list_activities(db, params, name=name)
    set_total_count(response, metadata)
    return ActivityListEnvelope(
        metadata=metadata,
        activities=[ActivityResponse.model_validate(a) for a in activities],
    )


@router.post(
    "/activity",
    response_model=ActivityEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Create an activity",
)
async def create_activity(
    payload: ActivityCreate,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> ActivityEnvelope:
    activity = await activity_service.create_activity(db, payload)
    response.headers["Location"] = f"/v1/activity/{activity.id}"
    return ActivityEnvelope(activity=ActivityResponse.model_validate(activity))


@router.get(
    "/activity/{activity_id}",
    response_model=ActivityEnvelope,
    responses=ITEM_ERRORS,
    summary="Get an activity",
)
async def get_activity(activity_id: int, db: AsyncSession = Depends(get_db_session)) -> ActivityEnvelope:
    activity = await activity_service.get_activity(db, activity_id)
    return ActivityEnvelope(activity=ActivityResponse.model_validate(activity))


@router.patch(
    "/activity/{activity_id}",
    response_model=ActivityEnvelope,
    responses=UPDATE_ERRORS,
    summary="Rename an activity",
)
async def update_activity(
    activity_id: int,
    payload: ActivityUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ActivityEnvelope:
    activity = await activity_service.update_activity(db, activity_id, payload)
    return ActivityEnvelope(activity=ActivityResponse.model_validate(activity))


@router.delete(
    "/activity/{activity_id}",
    response_model=MessageResponse,
    responses=ITEM_ERRORS,
    summary="Delete an activity",
)
async def delete_activity(activity_id: int, db: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await activity_service.delete_activity(db, activity_id)
    return MessageResponse(message="activity successfully deleted")
