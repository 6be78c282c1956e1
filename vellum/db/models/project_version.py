"""Project version model: a named checkpoint of a project's pages."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vellum.db.base import Base

if TYPE_CHECKING:
    from vellum.db.models.page_version import PageVersion
    from vellum.db.models.project import Project


class ProjectVersion(Base):
    """Immutable checkpoint of a project, numbered MAJOR.MINOR.PATCH."""

    __tablename__ = "project_versions"
    __table_args__ = (
        UniqueConstraint("project_id", "version_number", name="uq_project_versions_number"),
        # At most one current version per project, enforced by the store
        Index(
            "uq_project_versions_current",
            "project_id",
            unique=True,
            postgresql_where=text("is_current"),
            sqlite_where=text("is_current = 1"),
        ),
    )

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project: Mapped["Project"] = relationship("Project", back_populates="versions")

    version_number: Mapped[str] = mapped_column(String(50), nullable=False)
    version_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    release_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Lifecycle: draft -> current -> archived
    is_current: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_draft: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    published_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)

    created_by: Mapped[UUID | None] = mapped_column(nullable=True)

    pages: Mapped[list["PageVersion"]] = relationship(
        "PageVersion",
        back_populates="project_version",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
