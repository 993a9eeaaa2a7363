"""
AtlasPM Backend — Activity SQLAlchemy Model
============================================

What:  ORM model for the `activity` table: kinds of billable work
       ("Fieldwork", "Drafting") that a timesheet entry is booked against.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from atlaspm.database import Base
from atlaspm.models.common import VersionedMixin


class Activity(VersionedMixin, Base):
    __tablename__ = "activity"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="Activity name, 1-100 characters",
    )

    def __repr__(self) -> str:
        return f"<Activity(id={self.id}, name='{self.name}')>"
