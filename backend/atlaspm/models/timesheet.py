"""
AtlasPM Backend — Timesheet SQLAlchemy Model & Join Tables
===========================================================

What:  ORM model for the `timesheet` table and its four join tables
       (`timesheet_project`, `timesheet_client`, `timesheet_appuser`,
       `timesheet_activity`).
Why join tables as well as FK columns:
    Reporting queries walk from a project/client/user/activity to its
    timesheets through the join tables. They must always agree with the
    FK columns on the timesheet row, which is why every timesheet update
    reconciles all four inside the same transaction as the row update.

Table Design Rationale:
    - id: ULID, sortable by creation time, generated by the application
    - work_minutes: 1..1440, a day's total per user is capped at 1440 too
    - status: small closed set, stored as a named enum
"""

import enum
from datetime import date

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from atlaspm.database import Base
from atlaspm.models.common import VersionedMixin
from atlaspm.models.ids import USER_ID_LENGTH, new_ulid

MAX_WORK_MINUTES = 1440


class TimesheetStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELED = "canceled"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class Timesheet(VersionedMixin, Base):
    __tablename__ = "timesheet"

    id: Mapped[str] = mapped_column(
        String(26),
        primary_key=True,
        default=new_ulid,
        comment="ULID",
    )

    appuser_id: Mapped[str] = mapped_column(
        String(USER_ID_LENGTH),
        ForeignKey("appuser.id"),
        nullable=False,
    )

    project_internal_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("project.internal_id"),
        nullable=False,
    )

    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("client.id"), nullable=False)
    activity_id: Mapped[int] = mapped_column(Integer, ForeignKey("activity.id"), nullable=False)

    work_date: Mapped[date] = mapped_column(Date, nullable=False)

    work_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )

    status: Mapped[TimesheetStatus] = mapped_column(
        Enum(
            TimesheetStatus,
            name="timesheet_status",
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=TimesheetStatus.ACTIVE,
        server_default=TimesheetStatus.ACTIVE.value,
    )

    __table_args__ = (
        CheckConstraint(
            f"work_minutes > 0 AND work_minutes <= {MAX_WORK_MINUTES}",
            name="timesheet_work_minutes_range",
        ),
        Index("idx_timesheet_appuser_date", "appuser_id", "work_date"),
        Index("idx_timesheet_project", "project_internal_id"),
        Index("idx_timesheet_client", "client_id"),
        Index("idx_timesheet_activity", "activity_id"),
    )

    def __repr__(self) -> str:
        return f"<Timesheet(id='{self.id}', work_date='{self.work_date}', version={self.version})>"


def _timesheet_link(name: str, column: str, target, type_) -> Table:
    return Table(
        name,
        Base.metadata,
        Column(
            "timesheet_id",
            String(26),
            ForeignKey("timesheet.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        Column(column, type_, ForeignKey(target, ondelete="CASCADE"), primary_key=True),
    )


timesheet_project = _timesheet_link(
    "timesheet_project", "project_internal_id", "project.internal_id", Integer
)
timesheet_client = _timesheet_link("timesheet_client", "client_id", "client.id", Integer)
timesheet_appuser = _timesheet_link(
    "timesheet_appuser", "appuser_id", "appuser.id", String(USER_ID_LENGTH)
)
timesheet_activity = _timesheet_link("timesheet_activity", "activity_id", "activity.id", Integer)
