from typing import Any, TYPE_CHECKING
from uuid import UUID

from advanced_alchemy.types import JsonB
from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vellum.db.base import Base
from vellum.lib.content import has_subpage_blocks

if TYPE_CHECKING:
    from vellum.db.models.project import Project


class Page(Base):
    """A node in a project's page hierarchy."""

    __tablename__ = "pages"
    __table_args__ = (
        UniqueConstraint("project_id", "parent_page_id", "slug", name="uq_pages_project_parent_slug"),
        # NULL parents never collide in the constraint above
        Index(
            "uq_pages_project_root_slug",
            "project_id",
            "slug",
            unique=True,
            postgresql_where=text("parent_page_id IS NULL"),
            sqlite_where=text("parent_page_id IS NULL"),
        ),
    )

    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project: Mapped["Project"] = relationship("Project", back_populates="pages")

    # Hierarchy (cycles are prevented by page_service.move_page)
    parent_page_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("pages.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Content fields
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    content: Mapped[dict[str, Any] | None] = mapped_column(JsonB, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Publication and ordering
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Actors (resolved by the caller, no users table here)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    updated_by: Mapped[UUID | None] = mapped_column(nullable=True)

    @property
    def has_subpage_blocks(self) -> bool:
        return has_subpage_blocks(self.content)
