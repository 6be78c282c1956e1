from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vellum.db.base import Base

if TYPE_CHECKING:
    from vellum.db.models.page import Page
    from vellum.db.models.project_version import ProjectVersion


class Project(Base):
    """A documentation project owning a page forest and its versions."""

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    pages: Mapped[list["Page"]] = relationship(
        "Page",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    versions: Mapped[list["ProjectVersion"]] = relationship(
        "ProjectVersion",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
