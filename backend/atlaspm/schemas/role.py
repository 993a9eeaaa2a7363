"""Role schemas for /v1/role."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from atlaspm.schemas.common import PageMetadata, ensure_not_blank


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=30)

    @field_validator("name")
    @classmethod
    def reject_blank(cls, v: Optional[str]) -> Optional[str]:
        return ensure_not_blank(v)


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=30)
    version: Optional[int] = Field(default=None, ge=1)

    @field_validator("name")
    @classmethod
    def reject_blank(cls, v: Optional[str]) -> Optional[str]:
        return ensure_not_blank(v)


class RoleResponse(BaseModel):
    id: int
    name: str
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RoleEnvelope(BaseModel):
    role: RoleResponse


class RoleListEnvelope(BaseModel):
    metadata: PageMetadata
    roles: List[RoleResponse]
