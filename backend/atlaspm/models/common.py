"""
AtlasPM Backend — Shared Model Columns & Types
===============================================

What:  The version/audit columns every mutable table carries, plus the
       portable JSON type used for GeoJSON features and image lists.
Why:   The update protocol relies on every table exposing `version` and
       `updated_at` under the same names; a mixin guarantees it.

Version column:
    Starts at 1 (server default), incremented by exactly one per committed
    update by the version guard, never written any other way.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Integer, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

# JSONB on PostgreSQL (indexable), plain JSON elsewhere (SQLite in tests)
PortableJSON = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VersionedMixin:
    """Adds `version`, `created_at` and `updated_at` to a model."""

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default=text("1"),
        comment="Optimistic concurrency counter, +1 per committed update",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the row was created (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the row was last mutated (UTC)",
    )
