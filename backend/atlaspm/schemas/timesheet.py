"""
AtlasPM Backend — Timesheet Schemas
====================================

What:  Request bodies and response envelopes for /v1/timesheet.

Field naming:
    The API speaks `work_mins` and `user_id`; the table stores
    `work_minutes` and `appuser_id`. `project_id` is always the external
    project number, never the internal key.

Responses embed the user, project, client and activity so a timesheet
table can be rendered without follow-up requests.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from atlaspm.models.ids import USER_ID_LENGTH
from atlaspm.models.timesheet import MAX_WORK_MINUTES, TimesheetStatus
from atlaspm.schemas.common import PageMetadata


class TimesheetCreate(BaseModel):
    user_id: str = Field(min_length=USER_ID_LENGTH, max_length=USER_ID_LENGTH)
    project_id: int = Field(gt=0, description="External project number")
    client_id: int = Field(gt=0)
    activity_id: int = Field(gt=0)
    work_date: date = Field(description="YYYY-MM-DD")
    work_mins: int = Field(gt=0, le=MAX_WORK_MINUTES)
    description: str = Field(default="", max_length=1000)
    status: TimesheetStatus = TimesheetStatus.ACTIVE


class TimesheetUpdate(BaseModel):
    user_id: Optional[str] = Field(default=None, min_length=USER_ID_LENGTH, max_length=USER_ID_LENGTH)
    project_id: Optional[int] = Field(default=None, gt=0)
    client_id: Optional[int] = Field(default=None, gt=0)
    activity_id: Optional[int] = Field(default=None, gt=0)
    work_date: Optional[date] = None
    work_mins: Optional[int] = Field(default=None, gt=0, le=MAX_WORK_MINUTES)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: Optional[TimesheetStatus] = None
    version: Optional[int] = Field(default=None, ge=1)


class TimesheetQuery(BaseModel):
    """
    Filters for GET /v1/timesheet, OR-combined except for the date range,
    which always narrows the result.
    """
    user_id: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    project_id: Optional[int] = Field(default=None, gt=0)
    project_name: Optional[str] = None
    activity_id: Optional[int] = Field(default=None, gt=0)
    activity_name: Optional[str] = None
    work_date: Optional[date] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None

    @model_validator(mode="after")
    def check_range(self) -> "TimesheetQuery":
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise ValueError("from_date must not be after to_date")
        return self

    @field_validator("user_id", "email", "first_name", "last_name", "project_name", "activity_name")
    @classmethod
    def empty_is_absent(cls, v: Optional[str]) -> Optional[str]:
        return v or None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class TimesheetUser(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str


class TimesheetProject(BaseModel):
    project_id: int
    name: str
    status: str


class TimesheetClient(BaseModel):
    id: int
    name: str


class TimesheetActivity(BaseModel):
    id: int
    name: str


class TimesheetResponse(BaseModel):
    id: str
    user: TimesheetUser
    project: TimesheetProject
    client: TimesheetClient
    activity: TimesheetActivity
    work_date: date
    work_mins: int
    description: str
    status: TimesheetStatus
    version: int
    created_at: datetime
    updated_at: datetime


class TimesheetEnvelope(BaseModel):
    timesheet: TimesheetResponse


class TimesheetListEnvelope(BaseModel):
    metadata: PageMetadata
    timesheets: List[TimesheetResponse]
