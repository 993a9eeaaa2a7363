"""
AtlasPM Backend — Role SQLAlchemy Model
========================================

What:  ORM model for the `role` table (e.g. "Project Manager", "Surveyor").
Who:   Referenced by project assignments as the `role_id` half of each
       (employee, role) pair.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from atlaspm.database import Base
from atlaspm.models.common import VersionedMixin


class Role(VersionedMixin, Base):
    """A role an employee can hold on a project."""

    __tablename__ = "role"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Unique: assignments display the role by name
    name: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        unique=True,
        comment="Role name, 1-30 characters",
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name='{self.name}')>"
