"""initial tenant and role schema

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel.sql.sqltypes
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0a1b2c3d4e5f"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_str = sqlmodel.sql.sqltypes.AutoString


def upgrade() -> None:
    """Create organizations, profiles, role assignments, invites and ATS tables."""
    op.create_table(
        "organizations",
        sa.Column("id", _str(), nullable=False),
        sa.Column("slug", _str(), nullable=False),
        sa.Column("name", _str(), nullable=False),
        sa.Column("subscription_status", _str(), nullable=False, server_default="trial"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_organizations_slug"), "organizations", ["slug"], unique=True)

    op.create_table(
        "profiles",
        sa.Column("id", _str(), nullable=False),
        sa.Column("email", _str(), nullable=False),
        sa.Column("name", _str(), nullable=False, server_default=""),
        sa.Column("password_hash", _str(), nullable=False, server_default=""),
        sa.Column("org_id", _str(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_profiles_email"), "profiles", ["email"], unique=True)
    op.create_index(op.f("ix_profiles_org_id"), "profiles", ["org_id"])

    op.create_table(
        "user_roles",
        sa.Column("id", _str(), nullable=False),
        sa.Column("user_id", _str(), nullable=False),
        sa.Column("org_id", _str(), nullable=True),
        sa.Column("role", _str(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "org_id", name="uq_user_roles_user_org"),
    )
    op.create_index(op.f("ix_user_roles_user_id"), "user_roles", ["user_id"])
    op.create_index(op.f("ix_user_roles_org_id"), "user_roles", ["org_id"])

    op.create_table(
        "departments",
        sa.Column("id", _str(), nullable=False),
        sa.Column("org_id", _str(), nullable=False),
        sa.Column("name", _str(), nullable=False),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_departments_org_id"), "departments", ["org_id"])

    op.create_table(
        "user_role_departments",
        sa.Column("id", _str(), nullable=False),
        sa.Column("user_id", _str(), nullable=False),
        sa.Column("org_id", _str(), nullable=False),
        sa.Column("department_id", _str(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_role_departments_user_id"), "user_role_departments", ["user_id"])
    op.create_index(op.f("ix_user_role_departments_org_id"), "user_role_departments", ["org_id"])

    op.create_table(
        "team_invites",
        sa.Column("id", _str(), nullable=False),
        sa.Column("org_id", _str(), nullable=False),
        sa.Column("email", _str(), nullable=False),
        sa.Column("role", _str(), nullable=False),
        sa.Column("status", _str(), nullable=False, server_default="pending"),
        sa.Column("invited_by", _str(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accepted_by", _str(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_team_invites_org_id"), "team_invites", ["org_id"])
    op.create_index(op.f("ix_team_invites_email"), "team_invites", ["email"])

    op.create_table(
        "jobs",
        sa.Column("id", _str(), nullable=False),
        sa.Column("org_id", _str(), nullable=False),
        sa.Column("department_id", _str(), nullable=True),
        sa.Column("title", _str(), nullable=False),
        sa.Column("status", _str(), nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_jobs_org_id"), "jobs", ["org_id"])
    op.create_index(op.f("ix_jobs_department_id"), "jobs", ["department_id"])

    op.create_table(
        "candidates",
        sa.Column("id", _str(), nullable=False),
        sa.Column("org_id", _str(), nullable=False),
        sa.Column("full_name", _str(), nullable=False),
        sa.Column("email", _str(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_candidates_org_id"), "candidates", ["org_id"])

    op.create_table(
        "applications",
        sa.Column("id", _str(), nullable=False),
        sa.Column("org_id", _str(), nullable=False),
        sa.Column("job_id", _str(), nullable=False),
        sa.Column("candidate_id", _str(), nullable=False),
        sa.Column("stage", _str(), nullable=False, server_default="applied"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.ForeignKeyConstraint(["candidate_id"], ["candidates.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_applications_org_id"), "applications", ["org_id"])
    op.create_index(op.f("ix_applications_job_id"), "applications", ["job_id"])
    op.create_index(op.f("ix_applications_candidate_id"), "applications", ["candidate_id"])

    op.create_table(
        "interviews",
        sa.Column("id", _str(), nullable=False),
        sa.Column("org_id", _str(), nullable=False),
        sa.Column("application_id", _str(), nullable=False),
        sa.Column("interviewer_id", _str(), nullable=True),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", _str(), nullable=False, server_default="scheduled"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["org_id"], ["organizations.id"]),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"]),
        sa.ForeignKeyConstraint(["interviewer_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_interviews_org_id"), "interviews", ["org_id"])
    op.create_index(op.f("ix_interviews_application_id"), "interviews", ["application_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", _str(), nullable=False),
        sa.Column("org_id", _str(), nullable=True),
        sa.Column("user_id", _str(), nullable=False, server_default=""),
        sa.Column("action", _str(), nullable=False),
        sa.Column("resource_type", _str(), nullable=False, server_default=""),
        sa.Column("resource_id", _str(), nullable=False, server_default=""),
        sa.Column("details_json", _str(), nullable=False, server_default="{}"),
        sa.Column("ip_address", _str(), nullable=False, server_default=""),
        sa.Column("request_id", _str(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_logs_org_id"), "audit_logs", ["org_id"])
    op.create_index(op.f("ix_audit_logs_action"), "audit_logs", ["action"])


def downgrade() -> None:
    """Drop every table created above, children first."""
    for table in (
        "audit_logs",
        "interviews",
        "applications",
        "candidates",
        "jobs",
        "team_invites",
        "user_role_departments",
        "departments",
        "user_roles",
        "profiles",
        "organizations",
    ):
        op.drop_table(table)
