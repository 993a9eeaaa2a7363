"""
Proposal schemas for /v1/proposal.

The proposal code doubles as the URL identifier, so renaming a proposal
through PATCH changes where it lives (the response carries the new code).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from atlaspm.schemas.common import PageMetadata, ensure_not_blank


class ProposalCreate(BaseModel):
    proposal_id: str = Field(min_length=1, max_length=10, description="External proposal code")

    @field_validator("proposal_id")
    @classmethod
    def reject_blank(cls, v: Optional[str]) -> Optional[str]:
        return ensure_not_blank(v)


class ProposalUpdate(BaseModel):
    proposal_id: Optional[str] = Field(default=None, min_length=1, max_length=10)
    version: Optional[int] = Field(default=None, ge=1)

    @field_validator("proposal_id")
    @classmethod
    def reject_blank(cls, v: Optional[str]) -> Optional[str]:
        return ensure_not_blank(v)


class ProposalResponse(BaseModel):
    proposal_id: str
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProposalEnvelope(BaseModel):
    proposal: ProposalResponse


class ProposalListEnvelope(BaseModel):
    metadata: PageMetadata
    proposals: List[ProposalResponse]
