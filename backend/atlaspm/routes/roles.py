"""
AtlasPM Backend — Role Route Handlers
======================================

What:  /v1/role endpoints. Roles name the part an employee plays on a
       project assignment ("Surveyor", "Project Manager").
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.database import get_db_session
from atlaspm.routes.common import ITEM_ERRORS, UPDATE_ERRORS, WRITE_ERRORS, list_params, set_total_count
from atlaspm.schemas.common import MessageResponse
from atlaspm.schemas.role import RoleCreate, RoleEnvelope, RoleListEnvelope, RoleResponse, RoleUpdate
from atlaspm.services.pagination import ListParams
from atlaspm.services.role_service import role_service

router = APIRouter(prefix="/v1", tags=["Roles"])


@router.get("/role", response_model=RoleListEnvelope, summary="List roles")
async def list_roles(
    response: Response,
    params: ListParams = Depends(list_params),
    name: Optional[str] = Query(default=None, description="Substring of the role name"),
    db: AsyncSession = Depends(get_db_session),
) -> RoleListEnvelope:
    roles, metadata = await role_service.list_roles(db, params, name=name)
    set_total_count(response, metadata)
    return RoleListEnvelope(metadata=metadata, roles=[RoleResponse.model_validate(r) for r in roles])


@router.post(
    "/role",
    response_model=RoleEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Create a role",
)
async def create_role(
    payload: RoleCreate,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> RoleEnvelope:
    role = await role_service.create_role(db, payload)
    response.headers["Location"] = f"/v1/role/{role.id}"
    return RoleEnvelope(role=RoleResponse.model_validate(role))


@router.get("/role/{role_id}", response_model=RoleEnvelope, responses=ITEM_ERRORS, summary="Get a role")
async def get_role(role_id: int, db: AsyncSession = Depends(get_db_session)) -> RoleEnvelope:
    role = await role_service.get_role(db, role_id)
    return RoleEnvelope(role=RoleResponse.model_validate(role))


@router.patch(
    "/role/{role_id}",
    response_model=RoleEnvelope,
    responses=UPDATE_ERRORS,
    summary="Rename a role",
)
async def update_role(
    role_id: int,
    payload: RoleUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> RoleEnvelope:
    role = await role_service.update_role(db, role_id, payload)
    return RoleEnvelope(role=RoleResponse.model_validate(role))


@router.delete(
    "/role/{role_id}",
    response_model=MessageResponse,
    responses=ITEM_ERRORS,
    summary="Delete a role",
    description="Removes the role and every project assignment that uses it.",
)
async def delete_role(role_id: int, db: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await role_service.delete_role(db, role_id)
    return MessageResponse(message="role successfully deleted")
