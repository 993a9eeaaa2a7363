"""
AtlasPM Backend — Client Schemas
=================================

What:  Request bodies and response envelopes for /v1/client.

PATCH semantics:
    Every field of ClientUpdate is optional. Only fields the client actually
    sent are applied (`model_dump(exclude_unset=True)`). `version` carries the
    version the client last saw; omit it to update against whatever the
    server reads first.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from atlaspm.schemas.common import PageMetadata, ensure_not_blank


class ClientCreate(BaseModel):
    name: str = Field(min_length=1, max_length=500, description="Client name")
    address: Optional[str] = Field(default=None, min_length=1, max_length=500)
    logo_url: Optional[str] = Field(default=None, description="Object-storage key of the logo")
    note: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name", "address")
    @classmethod
    def reject_blank(cls, v: Optional[str]) -> Optional[str]:
        return ensure_not_blank(v)


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=500)
    address: Optional[str] = Field(default=None, min_length=1, max_length=500)
    logo_url: Optional[str] = None
    note: Optional[str] = Field(default=None, max_length=500)
    version: Optional[int] = Field(default=None, ge=1, description="Expected current version")

    @field_validator("name", "address")
    @classmethod
    def reject_blank(cls, v: Optional[str]) -> Optional[str]:
        return ensure_not_blank(v)


class ClientResponse(BaseModel):
    id: int
    name: str
    address: Optional[str] = None
    logo_url: Optional[str] = None
    note: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClientEnvelope(BaseModel):
    client: ClientResponse


class ClientListEnvelope(BaseModel):
    metadata: PageMetadata
    clients: List[ClientResponse]
