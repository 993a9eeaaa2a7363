"""
AtlasPM Backend — Proposal Route Handlers
==========================================

What:  /v1/proposal endpoints, addressed by the external proposal code
       (e.g. /v1/proposal/P001-24), never by the internal key.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.database import get_db_session
from atlaspm.routes.common import ITEM_ERRORS, UPDATE_ERRORS, WRITE_ERRORS, list_params, set_total_count
from atlaspm.schemas.common import MessageResponse
from atlaspm.schemas.proposal import (
    ProposalCreate,
    ProposalEnvelope,
    ProposalListEnvelope,
    ProposalResponse,
    ProposalUpdate,
)
from atlaspm.services.pagination import ListParams
from atlaspm.services.proposal_service import proposal_service

router = APIRouter(prefix="/v1", tags=["Proposals"])


@router.get("/proposal", response_model=ProposalListEnvelope, summary="List proposals")
async def list_proposals(
    response: Response,
    params: ListParams = Depends(list_params),
    proposal_id: Optional[str] = Query(default=None, description="Substring of the proposal code"),
    db: AsyncSession = Depends(get_db_session),
) -> ProposalListEnvelope:
    proposals, metadata = await proposal_service.list_proposals(db, params, proposal_id=proposal_id)
    set_total_count(response, metadata)
    return ProposalListEnvelope(
        metadata=metadata,
        proposals=[ProposalResponse.model_validate(p) for p in proposals],
    )


@router.post(
    "/proposal",
    response_model=ProposalEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_ERRORS,
    summary="Register a proposal code",
)
async def create_proposal(
    payload: ProposalCreate,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> ProposalEnvelope:
    proposal = await proposal_service.create_proposal(db, payload)
    response.headers["Location"] = f"/v1/proposal/{proposal.proposal_id}"
    return ProposalEnvelope(proposal=ProposalResponse.model_validate(proposal))


@router.get(
    "/proposal/{proposal_id}",
    response_model=ProposalEnvelope,
    responses=ITEM_ERRORS,
    summary="Get a proposal by code",
)
async def get_proposal(proposal_id: str, db: AsyncSession = Depends(get_db_session)) -> ProposalEnvelope:
    proposal = await proposal_service.get_proposal(db, proposal_id)
    return ProposalEnvelope(proposal=ProposalResponse.model_validate(proposal))


@router.patch(
    "/proposal/{proposal_id}",
    response_model=ProposalEnvelope,
    responses=UPDATE_ERRORS,
    summary="Change a proposal code",
)
async def update_proposal(
    proposal_id: str,
    payload: ProposalUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ProposalEnvelope:
    proposal = await proposal_service.update_proposal(db, proposal_id, payload)
    return ProposalEnvelope(proposal=ProposalResponse.model_validate(proposal))


@router.delete(
    "/proposal/{proposal_id}",
    response_model=MessageResponse,
    responses=ITEM_ERRORS,
    summary="Delete a proposal",
)
async def delete_proposal(proposal_id: str, db: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await proposal_service.delete_proposal(db, proposal_id)
    return MessageResponse(message="proposal successfully deleted")
