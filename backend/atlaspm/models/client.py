"""
AtlasPM Backend — Client SQLAlchemy Model
==========================================

What:  ORM model for the `client` table: organisations projects are run for.
How:   Projects link to clients through the `project_client` join table
       (see models/project.py); timesheets through `timesheet_client`.

Table Design Rationale:
    - name is NOT unique: two branches of one organisation may share a name.
      Project input resolves client names by exact match and takes the
      lowest id when several match.
    - address/logo_url/note are optional free text.
"""

from typing import Optional

from sqlalchemy import Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from atlaspm.database import Base
from atlaspm.models.common import VersionedMixin


class Client(VersionedMixin, Base):
    """A customer organisation."""

    __tablename__ = "client"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Surrogate key",
    )

    name: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Display name, matched exactly by project client_names",
    )

    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    logo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_client_name", "name"),
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name='{self.name}', version={self.version})>"
