"""
AtlasPM Backend — Project Schemas
==================================

What:  Request bodies and response envelopes for /v1/project, including the
       GeoJSON `feature` structure and assignment entries.

Association fields on ProjectUpdate:
    client_names / assignments omitted (or null) → links left untouched
    assignments: []                              → every assignment removed
    client_names: []                             → rejected, a project always
                                                   has at least one client

Example create body:
    {
        "project_id": 24001,
        "proposal_id": "P001-24",
        "name": "Harbour survey",
        "status": "active",
        "client_names": ["Acme"],
        "feature": {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [151.21, -33.86]},
            "properties": {"name": "Harbour", "full_address": "1 Quay St, Sydney"}
        },
        "assignments": [{"employee_id": "k3x9a2mq", "role_id": 1}]
    }
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from atlaspm.schemas.common import PageMetadata, ensure_not_blank, ensure_unique


# ══════════════════════════════════════════════════════════════════════════
# GeoJSON
# ══════════════════════════════════════════════════════════════════════════


class PointGeometry(BaseModel):
    type: Literal["Point"]
    coordinates: List[float] = Field(min_length=2, max_length=2, description="[lng, lat]")

    @field_validator("coordinates")
    @classmethod
    def validate_lng_lat(cls, v: List[float]) -> List[float]:
        lng, lat = v
        if not -180 <= lng <= 180:
            raise ValueError("longitude must be in between -180 and 180")
        if not -90 <= lat <= 90:
            raise ValueError("latitude must be in between -90 and 90")
        return v


class FeatureProperties(BaseModel):
    name: str
    full_address: str

    # other properties (suburb, postcode, ...) are kept as sent
    model_config = ConfigDict(extra="allow")


class Feature(BaseModel):
    """A GeoJSON Feature with a Point geometry."""
    type: Literal["Feature"]
    geometry: PointGeometry
    properties: FeatureProperties


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class AssignmentInput(BaseModel):
    employee_id: str = Field(min_length=1, description="User id of the employee")
    role_id: int = Field(gt=0, description="Role the employee holds on the project")


def _unique_assignments(v: Optional[List[AssignmentInput]]) -> Optional[List[AssignmentInput]]:
    if v is None:
        return None
    pairs = [(a.employee_id, a.role_id) for a in v]
    if len(set(pairs)) != len(pairs):
        raise ValueError("must not contain duplicate assignments")
    return v


class ProjectCreate(BaseModel):
    project_id: int = Field(gt=0, le=2_147_483_647, description="External project number")
    proposal_id: str = Field(min_length=1, max_length=10)
    name: str = Field(min_length=1, max_length=500)
    status: str = Field(min_length=1, max_length=100)
    feature: Optional[Feature] = None
    note: Optional[str] = Field(default=None, max_length=1000)
    images: Optional[List[str]] = Field(default=None, min_length=1)
    client_names: List[str] = Field(min_length=1, description="Exact client names")
    assignments: Optional[List[AssignmentInput]] = None

    @field_validator("proposal_id", "name", "status")
    @classmethod
    def reject_blank(cls, v: Optional[str]) -> Optional[str]:
        return ensure_not_blank(v)

    @field_validator("images", "client_names")
    @classmethod
    def reject_duplicates(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return ensure_unique(v)

    @field_validator("assignments")
    @classmethod
    def reject_duplicate_assignments(cls, v):
        return _unique_assignments(v)


class ProjectUpdate(BaseModel):
    project_id: Optional[int] = Field(default=None, gt=0, le=2_147_483_647)
    proposal_id: Optional[str] = Field(default=None, min_length=1, max_length=10)
    name: Optional[str] = Field(default=None, min_length=1, max_length=500)
    status: Optional[str] = Field(default=None, min_length=1, max_length=100)
    feature: Optional[Feature] = None
    note: Optional[str] = Field(default=None, max_length=1000)
    images: Optional[List[str]] = Field(default=None, min_length=1)
    client_names: Optional[List[str]] = Field(default=None, min_length=1)
    assignments: Optional[List[AssignmentInput]] = None
    version: Optional[int] = Field(default=None, ge=1, description="Expected current version")

    @field_validator("proposal_id", "name", "status")
    @classmethod
    def reject_blank(cls, v: Optional[str]) -> Optional[str]:
        return ensure_not_blank(v)

    @field_validator("images", "client_names")
    @classmethod
    def reject_duplicates(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return ensure_unique(v)

    @field_validator("assignments")
    @classmethod
    def reject_duplicate_assignments(cls, v):
        return _unique_assignments(v)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ProjectClient(BaseModel):
    client_id: int
    client_name: str
    client_address: Optional[str] = None
    client_logo: Optional[str] = None
    client_note: Optional[str] = None


class ProjectAssignment(BaseModel):
    employee_id: str
    employee_email: str
    role_id: int
    role_name: str


class ProjectResponse(BaseModel):
    """
    Full project representation.

    `clients` and `assignments` are embedded so the project page renders
    from one request. The internal surrogate key is never exposed.
    """
    project_id: int
    proposal_id: str
    name: str
    status: str
    feature: Optional[Dict[str, Any]] = None
    note: Optional[str] = None
    images: Optional[List[str]] = None
    clients: List[ProjectClient] = Field(default_factory=list)
    assignments: List[ProjectAssignment] = Field(default_factory=list)
    version: int
    created_at: datetime
    updated_at: datetime


class ProjectEnvelope(BaseModel):
    project: ProjectResponse


class ProjectListEnvelope(BaseModel):
    metadata: PageMetadata
    projects: List[ProjectResponse]
