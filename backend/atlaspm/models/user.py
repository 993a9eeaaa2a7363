"""
AtlasPM Backend — User SQLAlchemy Model
========================================

What:  ORM model for the `appuser` table (employees).
Why `appuser`: `user` is a reserved word in PostgreSQL.

Table Design Rationale:
    - id: 8-character application-generated id (see models/ids.py), short
      enough to read out over the phone and stable across email changes
    - email: stored lowercased; uniqueness is therefore case-insensitive
    - password_hash: bcrypt hash bytes, the plaintext is never stored
"""

from sqlalchemy import Boolean, LargeBinary, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from atlaspm.database import Base
from atlaspm.models.common import VersionedMixin
from atlaspm.models.ids import USER_ID_LENGTH, new_user_id


class AppUser(VersionedMixin, Base):
    __tablename__ = "appuser"

    id: Mapped[str] = mapped_column(
        String(USER_ID_LENGTH),
        primary_key=True,
        default=new_user_id,
        comment="8-character application-generated id",
    )

    email: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        unique=True,
        comment="Login email, lowercased",
    )

    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)

    password_hash: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
        comment="bcrypt hash of the password",
    )

    activated: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    def __repr__(self) -> str:
        return f"<AppUser(id='{self.id}', email='{self.email}')>"
