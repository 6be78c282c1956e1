"""Page version model: the frozen content of one page inside a project version."""

from typing import Any, TYPE_CHECKING
from uuid import UUID

from advanced_alchemy.types import JsonB
from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vellum.db.base import Base

if TYPE_CHECKING:
    from vellum.db.models.project_version import ProjectVersion


class PageVersion(Base):
    """Snapshot of a page's title, description and content.

    Snapshot columns hold value copies taken when the version was cut and are
    never updated afterwards.
    """

    __tablename__ = "page_versions"
    __table_args__ = (
        UniqueConstraint("project_version_id", "page_id", name="uq_page_versions_version_page"),
    )

    # Cascade delete with the owning project version
    project_version_id: Mapped[UUID] = mapped_column(
        ForeignKey("project_versions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_version: Mapped["ProjectVersion"] = relationship("ProjectVersion", back_populates="pages")

    # Reference to the live page; page_service refuses to delete snapshotted pages
    page_id: Mapped[UUID] = mapped_column(
        ForeignKey("pages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title_snapshot: Mapped[str] = mapped_column(String(500), nullable=False)
    description_snapshot: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_snapshot: Mapped[dict[str, Any] | None] = mapped_column(JsonB, nullable=True)
