"""Create projects, pages, project_versions and page_versions tables.

Revision ID: 3c1f0a9b7d21
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "3c1f0a9b7d21"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("sa_orm_sentinel", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_slug", "projects", ["slug"], unique=True)

    op.create_table(
        "pages",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("parent_page_id", sa.Uuid(), nullable=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("content", JSON_TYPE, nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(64), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("updated_by", sa.Uuid(), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_page_id"], ["pages.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("project_id", "parent_page_id", "slug", name="uq_pages_project_parent_slug"),
    )
    op.create_index("ix_pages_project_id", "pages", ["project_id"])
    op.create_index("ix_pages_parent_page_id", "pages", ["parent_page_id"])
    op.create_index("ix_pages_slug", "pages", ["slug"])
    op.create_index(
        "uq_pages_project_root_slug",
        "pages",
        ["project_id", "slug"],
        unique=True,
        postgresql_where=sa.text("parent_page_id IS NULL"),
        sqlite_where=sa.text("parent_page_id IS NULL"),
    )

    op.create_table(
        "project_versions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("version_number", sa.String(50), nullable=False),
        sa.Column("version_name", sa.String(255), nullable=True),
        sa.Column("release_notes", sa.Text(), nullable=True),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_draft", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("project_id", "version_number", name="uq_project_versions_number"),
    )
    op.create_index("ix_project_versions_project_id", "project_versions", ["project_id"])
    op.create_index(
        "uq_project_versions_current",
        "project_versions",
        ["project_id"],
        unique=True,
        postgresql_where=sa.text("is_current"),
        sqlite_where=sa.text("is_current = 1"),
    )

    op.create_table(
        "page_versions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_version_id", sa.Uuid(), nullable=False),
        sa.Column("page_id", sa.Uuid(), nullable=False),
        sa.Column("title_snapshot", sa.String(500), nullable=False),
        sa.Column("description_snapshot", sa.Text(), nullable=True),
        sa.Column("content_snapshot", JSON_TYPE, nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["project_version_id"], ["project_versions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["page_id"], ["pages.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("project_version_id", "page_id", name="uq_page_versions_version_page"),
    )
    op.create_index("ix_page_versions_project_version_id", "page_versions", ["project_version_id"])
    op.create_index("ix_page_versions_page_id", "page_versions", ["page_id"])


def downgrade() -> None:
    op.drop_index("ix_page_versions_page_id", table_name="page_versions")
    op.drop_index("ix_page_versions_project_version_id", table_name="page_versions")
    op.drop_table("page_versions")
    op.drop_index("uq_project_versions_current", table_name="project_versions")
    op.drop_index("ix_project_versions_project_id", table_name="project_versions")
    op.drop_table("project_versions")
    op.drop_index("uq_pages_project_root_slug", table_name="pages")
    op.drop_index("ix_pages_slug", table_name="pages")
    op.drop_index("ix_pages_parent_page_id", table_name="pages")
    op.drop_index("ix_pages_project_id", table_name="pages")
    op.drop_table("pages")
    op.drop_index("ix_projects_slug", table_name="projects")
    op.drop_table("projects")
