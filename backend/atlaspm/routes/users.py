"""
AtlasPM Backend — User Route Handlers
======================================

What:  /v1/user endpoints for employee records.
Why:   Employees are referenced by project assignments and timesheets by
       their 8-character id.

Passwords are accepted on create/update and never returned; responses only
carry the profile fields and the `activated` flag.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.database import get_db_session
from atlaspm.routes.common import ITEM_ERRORS, UPDATE_ERRORS, WRITE_ERRORS, list_params, set_total_count
from atlaspm.schemas.common import MessageResponse
from atlaspm.schemas.user import UserCreate, UserEnvelope, UserListEnvelope, UserResponse, UserUpdate
from atlaspm.services.pagination import ListParams
from atlaspm.services.user_service import user_service

router = APIRouter(prefix="/v1", tags=["Users"])


@router.get(
    "/user",
    response_model=UserListEnvelope,
    summary="List users",
    description="Filters on email, first name and last name are OR-combined substring matches.",
)
async def list_users(
    response: Response,
    params: ListParams = Depends(list_params),
    email: Optional[str] = Query(default=None),
    first_name: Optional[str] = Query(default=None),
    last_name: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> UserListEnvelope:
    users, metadata = await user_service.list_users(
        db, params, email=email, first_name=first_name, last_name=last_name
    )
    set_total_count(response, metadata)
    return UserListEnvelope(metadata=metadata, users=[UserResponse.model_validate(u) for u in users])


@router.post(
    "/user",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Create a user",
)
async def create_user(
    payload: UserCreate,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await user_service.create_user(db, payload)
    response.headers["Location"] = f"/v1/user/{user.id}"
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.get("/user/{user_id}", response_model=UserEnvelope, responses=ITEM_ERRORS, summary="Get a user")
async def get_user(user_id: str, db: AsyncSession = Depends(get_db_session)) -> UserEnvelope:
    user = await user_service.get_user(db, user_id)
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.patch(
    "/user/{user_id}",
    response_model=UserEnvelope,
    responses=UPDATE_ERRORS,
    summary="Partially update a user",
)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await user_service.update_user(db, user_id, payload)
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.delete(
    "/user/{user_id}",
    response_model=MessageResponse,
    responses=ITEM_ERRORS,
    summary="Delete a user",
)
async def delete_user(user_id: str, db: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await user_service.delete_user(db, user_id)
    return MessageResponse(message="user successfully deleted")
