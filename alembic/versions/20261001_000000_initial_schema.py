"""Initial schema: containers, attachments, file versions, retention policies.

Revision ID: 001
Revises:
Create Date: 2026-10-01

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create container, attachment, version and retention policy tables."""
    op.create_table(
        "teams",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("team_id", sa.UUID(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_team_id", "projects", ["team_id"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("project_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])

    op.create_table(
        "attachments",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("task_id", sa.UUID(), nullable=True),
        sa.Column("project_id", sa.UUID(), nullable=True),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("content_type", sa.String(length=255), nullable=False),
        sa.Column("size_bytes", sa.BigInteger(), nullable=False),
        sa.Column("latest_version_number", sa.Integer(), server_default="0", nullable=False),
        sa.Column("version_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "(task_id IS NULL) <> (project_id IS NULL)",
            name="ck_attachments_single_container",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_attachments_task_id", "attachments", ["task_id"])
    op.create_index("ix_attachments_project_id", "attachments", ["project_id"])

    op.create_table(
        "file_versions",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("attachment_id", sa.UUID(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("storage_key", sa.String(length=1024), nullable=False),
        sa.Column("content_type", sa.String(length=255), nullable=False),
        sa.Column("size_bytes", sa.BigInteger(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["attachment_id"], ["attachments.id"], ondelete="CASCADE"),
        sa.CheckConstraint("version_number > 0", name="ck_file_versions_positive_number"),
        sa.CheckConstraint("size_bytes >= 0", name="ck_file_versions_size"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "attachment_id", "version_number", name="uq_file_versions_attachment_version"
        ),
        sa.UniqueConstraint("storage_key", name="uq_file_versions_storage_key"),
    )
    # Incremental retention runs select by recency
    op.create_index("ix_file_versions_created_at", "file_versions", ["created_at"])

    op.create_table(
        "retention_policies",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("scope", sa.String(length=16), nullable=False),
        sa.Column("team_id", sa.UUID(), nullable=True),
        sa.Column("project_id", sa.UUID(), nullable=True),
        sa.Column("max_versions", sa.Integer(), nullable=True),
        sa.Column("keep_days", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "scope IN ('global', 'team', 'project')", name="ck_retention_policies_scope"
        ),
        sa.CheckConstraint(
            "scope <> 'global' OR (team_id IS NULL AND project_id IS NULL)",
            name="ck_retention_policies_global_target",
        ),
        sa.CheckConstraint(
            "scope <> 'team' OR project_id IS NULL",
            name="ck_retention_policies_team_target",
        ),
        sa.CheckConstraint(
            "scope <> 'project' OR team_id IS NULL",
            name="ck_retention_policies_project_target",
        ),
        sa.CheckConstraint(
            "max_versions IS NULL OR max_versions > 0",
            name="ck_retention_policies_max_versions",
        ),
        sa.CheckConstraint(
            "keep_days IS NULL OR keep_days > 0",
            name="ck_retention_policies_keep_days",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_retention_policies_global",
        "retention_policies",
        ["scope"],
        unique=True,
        postgresql_where=sa.text("scope = 'global'"),
    )
    op.create_index(
        "uq_retention_policies_team",
        "retention_policies",
        ["team_id"],
        unique=True,
        postgresql_where=sa.text("scope = 'team' AND team_id IS NOT NULL"),
    )
    op.create_index(
        "uq_retention_policies_project",
        "retention_policies",
        ["project_id"],
        unique=True,
        postgresql_where=sa.text("scope = 'project' AND project_id IS NOT NULL"),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("uq_retention_policies_project", table_name="retention_policies")
    op.drop_index("uq_retention_policies_team", table_name="retention_policies")
    op.drop_index("uq_retention_policies_global", table_name="retention_policies")
    op.drop_table("retention_policies")
    op.drop_index("ix_file_versions_created_at", table_name="file_versions")
    op.drop_table("file_versions")
    op.drop_index("ix_attachments_project_id", table_name="attachments")
    op.drop_index("ix_attachments_task_id", table_name="attachments")
    op.drop_table("attachments")
    op.drop_index("ix_tasks_project_id", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("ix_projects_team_id", table_name="projects")
    op.drop_table("projects")
    op.drop_table("teams")
