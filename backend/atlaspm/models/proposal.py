"""
AtlasPM Backend — Proposal SQLAlchemy Model
============================================

What:  ORM model for the `proposal` table.
Why:   Proposals are addressed by their external code ("P001-24"), which the
       business can correct after the fact, so the row keeps a separate
       internal surrogate key.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from atlaspm.database import Base
from atlaspm.models.common import VersionedMixin


class Proposal(VersionedMixin, Base):
    __tablename__ = "proposal"

    internal_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Surrogate key, never exposed",
    )

    proposal_id: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        unique=True,
        comment="External proposal code, 1-10 characters",
    )

    def __repr__(self) -> str:
        return f"<Proposal(internal_id={self.internal_id}, proposal_id='{self.proposal_id}')>"
