"""
AtlasPM Backend — Proposal Service
===================================

What:  CRUD for proposals, addressed by their external code.
How:   The external code is looked up first to find the internal key; the
       version guard then runs against the internal key, so a PATCH that
       renames the proposal is still a single guarded row update.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.exceptions import NotFoundError
from atlaspm.models.proposal import Proposal
from atlaspm.schemas.common import PageMetadata, patch_fields
from atlaspm.schemas.proposal import ProposalCreate, ProposalUpdate
from atlaspm.services.orchestrator import UpdateOrchestrator
from atlaspm.services.pagination import ListParams, paginate
from atlaspm.services.transaction import store_operation

logger = logging.getLogger(__name__)

SORT_COLUMNS = {"proposal_id": Proposal.proposal_id}
DUPLICATES = {"proposal_id": "a proposal with this proposal_id already exists"}


class ProposalService:

    async def _find(self, db: AsyncSession, proposal_id: str) -> Proposal:
        result = await db.execute(select(Proposal).where(Proposal.proposal_id == proposal_id))
        proposal = result.scalar_one_or_none()
        if proposal is None:
            raise NotFoundError(resource="proposal", resource_id=proposal_id)
        return proposal

    @store_operation("proposal", duplicates=DUPLICATES)
    async def create_proposal(self, db: AsyncSession, payload: ProposalCreate) -> Proposal:
        async with db.begin():
            proposal = Proposal(proposal_id=payload.proposal_id)
            db.add(proposal)
            await db.flush()
        logger.info("Proposal created: %s", proposal.proposal_id)
        return proposal

    @store_operation("proposal")
    async def get_proposal(self, db: AsyncSession, proposal_id: str) -> Proposal:
        async with db.begin():
            return await self._find(db, proposal_id)

    @store_operation("proposal")
    async def list_proposals(
        self, db: AsyncSession, params: ListParams, proposal_id: Optional[str] = None
    ) -> Tuple[List[Proposal], PageMetadata]:
        stmt = select(Proposal)
        if proposal_id:
            stmt = stmt.where(Proposal.proposal_id.ilike(f"%{proposal_id}%"))
        async with db.begin():
            return await paginate(
                db, stmt, params, SORT_COLUMNS, "proposal_id", Proposal.internal_id
            )

    @store_operation("proposal", duplicates=DUPLICATES)
    async def update_proposal(
        self, db: AsyncSession, proposal_id: str, payload: ProposalUpdate
    ) -> Proposal:
        """
        Raises:
            NotFoundError: No proposal with this code
            EditConflictError: Version no longer matches
            DuplicateKeyError: Renamed onto an existing code
        """
        changes, expected = patch_fields(payload)
        async with UpdateOrchestrator(db, "proposal") as op:
            proposal = await self._find(db, proposal_id)
            await op.apply(
                Proposal, proposal.internal_id, expected or proposal.version, changes
            )
            await db.refresh(proposal)
        logger.info("Proposal %s updated to version %d", proposal.proposal_id, proposal.version)
        return proposal

    @store_operation("proposal")
    async def delete_proposal(self, db: AsyncSession, proposal_id: str) -> None:
        async with db.begin():
            result = await db.execute(
                delete(Proposal).where(Proposal.proposal_id == proposal_id)
            )
            if result.rowcount == 0:
                raise NotFoundError(resource="proposal", resource_id=proposal_id)
        logger.info("Proposal %s deleted", proposal_id)


proposal_service = ProposalService()
