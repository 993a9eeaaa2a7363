"""Activity schemas for /v1/activity."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from atlaspm.schemas.common import PageMetadata, ensure_not_blank


class ActivityCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def reject_blank(cls, v: Optional[str]) -> Optional[str]:
        return ensure_not_blank(v)


class ActivityUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    version: Optional[int] = Field(default=None, ge=1)

    @field_validator("name")
    @classmethod
    def reject_blank(cls, v: Optional[str]) -> Optional[str]:
        return ensure_not_blank(v)


class ActivityResponse(BaseModel):
    id: int
    name: str
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ActivityEnvelope(BaseModel):
    activity: ActivityResponse


class ActivityListEnvelope(BaseModel):
    metadata: PageMetadata
    activities: List[ActivityResponse]
