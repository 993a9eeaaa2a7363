"""
AtlasPM Backend — Project Route Handlers
=========================================

What:  /v1/project collection and item endpoints, addressed by the external
       project number (e.g. /v1/project/24001).
Why:   Projects are what the map view and the timesheet form are built on.
How:   Thin handlers over ProjectService; query strings become a
       ProjectFilters value, bodies are validated by the Pydantic schemas.

Map view usage:
    GET /v1/project?bbox=150.9,-34.1,151.4,-33.6&page_size=0
    returns every project whose point lies inside the box, in one page.

Concurrency:
    PATCH replaces the client set and/or assignments together with the
    scalar fields in one transaction. Send the `version` you read; a 409
    means somebody else saved first.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.database import get_db_session
from atlaspm.exceptions import ValidationError
from atlaspm.routes.common import ITEM_ERRORS, UPDATE_ERRORS, WRITE_ERRORS, list_params, set_total_count
from atlaspm.schemas.common import MessageResponse
from atlaspm.schemas.project import ProjectCreate, ProjectEnvelope, ProjectListEnvelope, ProjectUpdate
from atlaspm.services.pagination import ListParams
from atlaspm.services.project_service import ProjectFilters, project_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["Projects"])


def parse_bbox(raw: Optional[str]) -> Optional[List[float]]:
    """'min_lng,min_lat,max_lng,max_lat' → floats; the count is checked by the filter."""
    if raw is None:
        return None
    try:
        return [float(part) for part in raw.split(",")]
    except ValueError:
        raise ValidationError(field="bbox", message="must be comma-separated numbers")


@router.get(
    "/project",
    response_model=ProjectListEnvelope,
    summary="List projects",
    description=(
        "Returns projects with their clients and assignments. Filters are "
        "OR-combined; with no filters every project is returned. "
        "The total is also sent in the X-Total-Count header."
    ),
)
async def list_projects(
    response: Response,
    params: ListParams = Depends(list_params),
    name: Optional[str] = Query(default=None, description="Substring of the project name"),
    status_: Optional[str] = Query(default=None, alias="status", description="Substring of the status"),
    bbox: Optional[str] = Query(
        default=None, description="Bounding box: min_lng,min_lat,max_lng,max_lat"
    ),
    project_id: Optional[int] = Query(default=None, description="Exact project number"),
    proposal_id: Optional[str] = Query(default=None, description="Substring of the proposal code"),
    full_address: Optional[str] = Query(default=None, description="Substring of the site address"),
    client_name: Optional[str] = Query(default=None, description="Substring of a client name"),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectListEnvelope:
    filters = ProjectFilters(
        name=name,
        status=status_,
        bbox=parse_bbox(bbox),
        project_id=project_id,
        proposal_id=proposal_id,
        full_address=full_address,
        client_name=client_name,
    )
    projects, metadata = await project_service.list_projects(db, params, filters)
    set_total_count(response, metadata)
    return ProjectListEnvelope(metadata=metadata, projects=projects)


@router.post(
    "/project",
    response_model=ProjectEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Create a project",
    description=(
        "Creates the project, links it to the named clients and records the "
        "given assignments. Unknown client names, employees or roles are "
        "rejected with 422."
    ),
)
async def create_project(
    payload: ProjectCreate,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> ProjectEnvelope:
    project = await project_service.create_project(db, payload)
    response.headers["Location"] = f"/v1/project/{project.project_id}"
    return ProjectEnvelope(project=project)


@router.get(
    "/project/{project_id}",
    response_model=ProjectEnvelope,
    responses=ITEM_ERRORS,
    summary="Get a project by its number",
)
async def get_project(project_id: int, db: AsyncSession = Depends(get_db_session)) -> ProjectEnvelope:
    project = await project_service.get_project(db, project_id)
    return ProjectEnvelope(project=project)


@router.patch(
    "/project/{project_id}",
    response_model=ProjectEnvelope,
    responses=UPDATE_ERRORS,
    summary="Partially update a project",
    description=(
        "Only sent fields change. `client_names` and `assignments` replace the "
        "stored sets when present and leave them alone when omitted; an empty "
        "`assignments` list removes every assignment."
    ),
)
async def update_project(
    project_id: int,
    payload: ProjectUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ProjectEnvelope:
    project = await project_service.update_project(db, project_id, payload)
    return ProjectEnvelope(project=project)


@router.delete(
    "/project/{project_id}",
    response_model=MessageResponse,
    responses=ITEM_ERRORS,
    summary="Delete a project",
)
async def delete_project(project_id: int, db: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await project_service.delete_project(db, project_id)
    return MessageResponse(message="project successfully deleted")
