"""
AtlasPM Backend — Client Route Handlers
========================================

What:  /v1/client collection and item endpoints.
How:   Extracts path/query/body, delegates to ClientService, wraps the result
       in its envelope. No business logic lives here.

Concurrency:
    PATCH /v1/client/{id} accepts the version the caller last saw. If another
    request updated the client in between, the caller gets 409 and must
    re-fetch before trying again.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.database import get_db_session
from atlaspm.routes.common import ITEM_ERRORS, UPDATE_ERRORS, WRITE_ERRORS, list_params, set_total_count
from atlaspm.schemas.client import (
    ClientCreate,
    ClientEnvelope,
    ClientListEnvelope,
    ClientResponse,
    ClientUpdate,
)
from atlaspm.schemas.common import MessageResponse
from atlaspm.services.client_service import client_service
from atlaspm.services.pagination import ListParams

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/v1", tags=["Clients"])


@router.get(
    "/client",
    response_model=ClientListEnvelope,
    summary="List clients",
    description="Returns clients, optionally filtered by a case-insensitive name match.",
)
async def list_clients(
    response: Response,
    params: ListParams = Depends(list_params),
    name: Optional[str] = Query(default=None, description="Substring of the client name"),
    db: AsyncSession = Depends(get_db_session),
) -> ClientListEnvelope:
    clients, metadata = await client_service.list_clients(db, params, name=name)
    set_total_count(response, metadata)
    return ClientListEnvelope(
        metadata=metadata,
        clients=[ClientResponse.model_validate(c) for c in clients],
    )


@router.post(
    "/client",
    response_model=ClientEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Create a client",
)
async def create_client(
    payload: ClientCreate,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> ClientEnvelope:
    client = await client_service.create_client(db, payload)
    response.headers["Location"] = f"/v1/client/{client.id}"
    return ClientEnvelope(client=ClientResponse.model_validate(client))


@router.get(
    "/client/{client_id}",
    response_model=ClientEnvelope,
    responses=ITEM_ERRORS,
    summary="Get a client by id",
)
async def get_client(client_id: int, db: AsyncSession = Depends(get_db_session)) -> ClientEnvelope:
    client = await client_service.get_client(db, client_id)
    return ClientEnvelope(client=ClientResponse.model_validate(client))


@router.patch(
    "/client/{client_id}",
    response_model=ClientEnvelope,
    responses=UPDATE_ERRORS,
    summary="Partially update a client",
    description=(
        "Applies only the fields sent. Include `version` to make the update "
        "conditional on the client not having changed since it was read."
    ),
)
async def update_client(
    client_id: int,
    payload: ClientUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ClientEnvelope:
    client = await client_service.update_client(db, client_id, payload)
    return ClientEnvelope(client=ClientResponse.model_validate(client))


@router.delete(
    "/client/{client_id}",
    response_model=MessageResponse,
    responses=ITEM_ERRORS,
    summary="Delete a client",
)
async def delete_client(client_id: int, db: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await client_service.delete_client(db, client_id)
    return MessageResponse(message="client successfully deleted")
