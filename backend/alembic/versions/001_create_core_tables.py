"""Create core tables

Revision ID: 001
Revises: None
Create Date: 2024-03-01 00:00:00.000000+00:00

What:  Creates every AtlasPM table: the seven resources, the project join
       tables (project_client, assignment) and the four timesheet link tables.
How:   Unique constraints carry explicit "<table>_<column>_key" names; the
       store boundary reads those names to report which field clashed.

Every resource table carries `version` (starts at 1, +1 per committed
update), `created_at` and `updated_at`.

Rollback: downgrade() drops everything (destructive, all data lost).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

TIMESHEET_STATUS = sa.Enum(
    "active", "inactive", "canceled", "submitted", "approved", "rejected",
    name="timesheet_status",
)


def _versioned() -> list:
    return [
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def _timesheet_link(name: str, column: str, target: str, type_) -> None:
    op.create_table(
        name,
        sa.Column("timesheet_id", sa.String(26), nullable=False),
        sa.Column(column, type_, nullable=False),
        sa.ForeignKeyConstraint(["timesheet_id"], ["timesheet.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint([column], [target], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("timesheet_id", column, name=f"{name}_pkey"),
    )


def upgrade() -> None:
    # ── Reference data ────────────────────────────────────────────────────
    op.create_table(
        "client",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        *_versioned(),
        sa.PrimaryKeyConstraint("id", name="client_pkey"),
    )
    op.create_index("idx_client_name", "client", ["name"])

    op.create_table(
        "role",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(30), nullable=False),
        *_versioned(),
        sa.PrimaryKeyConstraint("id", name="role_pkey"),
        sa.UniqueConstraint("name", name="role_name_key"),
    )

    op.create_table(
        "activity",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        *_versioned(),
        sa.PrimaryKeyConstraint("id", name="activity_pkey"),
        sa.UniqueConstraint("name", name="activity_name_key"),
    )

    op.create_table(
        "proposal",
        sa.Column("internal_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("proposal_id", sa.String(10), nullable=False),
        *_versioned(),
        sa.PrimaryKeyConstraint("internal_id", name="proposal_pkey"),
        sa.UniqueConstraint("proposal_id", name="proposal_proposal_id_key"),
    )

    op.create_table(
        "appuser",
        sa.Column("id", sa.String(8), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("last_name", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.LargeBinary(), nullable=False),
        sa.Column("activated", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_versioned(),
        sa.PrimaryKeyConstraint("id", name="appuser_pkey"),
        sa.UniqueConstraint("email", name="appuser_email_key"),
    )

    # ── Projects ──────────────────────────────────────────────────────────
    op.create_table(
        "project",
        sa.Column("internal_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("proposal_id", sa.String(10), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("status", sa.String(100), nullable=False),
        sa.Column("feature", JSON_TYPE, nullable=True),
        sa.Column("images", JSON_TYPE, nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        *_versioned(),
        sa.PrimaryKeyConstraint("internal_id", name="project_pkey"),
        sa.UniqueConstraint("project_id", name="project_project_id_key"),
        sa.UniqueConstraint("proposal_id", name="project_proposal_id_key"),
    )
    op.create_index("idx_project_name", "project", ["name"])
    op.create_index("idx_project_status", "project", ["status"])

    op.create_table(
        "project_client",
        sa.Column("project_internal_id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["project_internal_id"], ["project.internal_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["client_id"], ["client.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("project_internal_id", "client_id", name="project_client_pkey"),
    )

    op.create_table(
        "assignment",
        sa.Column("project_internal_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.String(8), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["project_internal_id"], ["project.internal_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_id"], ["appuser.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["role.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint(
            "project_internal_id", "employee_id", "role_id", name="assignment_pkey"
        ),
    )
    op.create_index("idx_assignment_employee", "assignment", ["employee_id"])

    # ── Timesheets ────────────────────────────────────────────────────────
    op.create_table(
        "timesheet",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("appuser_id", sa.String(8), nullable=False),
        sa.Column("project_internal_id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("activity_id", sa.Integer(), nullable=False),
        sa.Column("work_date", sa.Date(), nullable=False),
        sa.Column("work_minutes", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("status", TIMESHEET_STATUS, nullable=False, server_default="active"),
        *_versioned(),
        sa.ForeignKeyConstraint(["appuser_id"], ["appuser.id"]),
        sa.ForeignKeyConstraint(["project_internal_id"], ["project.internal_id"]),
        sa.ForeignKeyConstraint(["client_id"], ["client.id"]),
        sa.ForeignKeyConstraint(["activity_id"], ["activity.id"]),
        sa.CheckConstraint(
            "work_minutes > 0 AND work_minutes <= 1440",
            name="timesheet_work_minutes_range",
        ),
        sa.PrimaryKeyConstraint("id", name="timesheet_pkey"),
    )
    op.create_index("idx_timesheet_appuser_date", "timesheet", ["appuser_id", "work_date"])
    op.create_index("idx_timesheet_project", "timesheet", ["project_internal_id"])
    op.create_index("idx_timesheet_client", "timesheet", ["client_id"])
    op.create_index("idx_timesheet_activity", "timesheet", ["activity_id"])

    _timesheet_link("timesheet_project", "project_internal_id", "project.internal_id", sa.Integer())
    _timesheet_link("timesheet_client", "client_id", "client.id", sa.Integer())
    _timesheet_link("timesheet_appuser", "appuser_id", "appuser.id", sa.String(8))
    _timesheet_link("timesheet_activity", "activity_id", "activity.id", sa.Integer())


def downgrade() -> None:
    for table in (
        "timesheet_activity",
        "timesheet_appuser",
        "timesheet_client",
        "timesheet_project",
        "timesheet",
        "assignment",
        "project_client",
        "project",
        "appuser",
        "proposal",
        "activity",
        "role",
        "client",
    ):
        op.drop_table(table)
    TIMESHEET_STATUS.drop(op.get_bind(), checkfirst=True)
