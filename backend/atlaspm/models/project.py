"""
AtlasPM Backend — Project SQLAlchemy Model & Join Tables
=========================================================

What:  ORM model for the `project` table plus its two join tables:
       `project_client` (which clients a project is run for) and
       `assignment` (which employee holds which role on the project).
Why:   Projects are the hub of the schema. Timesheets are booked against
       them and access to them is expressed through assignments.

Table Design Rationale:
    - internal_id: surrogate key. Join tables and timesheets reference it,
      so correcting a mistyped external project number never breaks links.
    - project_id: the externally-facing project number (e.g. 24001), unique.
    - proposal_id: the proposal code the project came from, unique.
    - feature: GeoJSON Point Feature (location + address), JSONB on PostgreSQL.
    - images: list of object-storage keys, JSONB on PostgreSQL.

Join tables carry only the paired foreign keys, a composite primary key and
ON DELETE CASCADE, so deleting a project, client, user or role removes the
links with it.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column

from atlaspm.database import Base
from atlaspm.models.common import PortableJSON, VersionedMixin
from atlaspm.models.ids import USER_ID_LENGTH


class Project(VersionedMixin, Base):
    __tablename__ = "project"

    internal_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Surrogate key referenced by join tables and timesheets",
    )

    project_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        unique=True,
        comment="External project number",
    )

    proposal_id: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        unique=True,
        comment="Proposal code the project originated from",
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(100), nullable=False)

    feature: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        PortableJSON,
        nullable=True,
        comment="GeoJSON Point Feature with name/full_address properties",
    )

    images: Mapped[Optional[List[str]]] = mapped_column(
        PortableJSON,
        nullable=True,
        comment="Object-storage keys of project images",
    )

    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_project_name", "name"),
        Index("idx_project_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Project(internal_id={self.internal_id}, project_id={self.project_id}, "
            f"version={self.version})>"
        )


project_client = Table(
    "project_client",
    Base.metadata,
    Column(
        "project_internal_id",
        Integer,
        ForeignKey("project.internal_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "client_id",
        Integer,
        ForeignKey("client.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


assignment = Table(
    "assignment",
    Base.metadata,
    Column(
        "project_internal_id",
        Integer,
        ForeignKey("project.internal_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "employee_id",
        String(USER_ID_LENGTH),
        ForeignKey("appuser.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "role_id",
        Integer,
        ForeignKey("role.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Index("idx_assignment_employee", "employee_id"),
)
