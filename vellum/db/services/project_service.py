"""Project service: the containers that own page trees and versions."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vellum.db.models import Project
from vellum.lib.errors import ConflictError, NotFoundError, ValidationError
from vellum.lib.slugs import slugify


async def list_projects(db_session: AsyncSession, public_only: bool = False) -> list[Project]:
    query = select(Project).order_by(Project.name.asc())
    if public_only:
        query = query.where(Project.is_public == True)  # noqa: E712
    result = await db_session.execute(query)
    return list(result.scalars().all())


async def get_project_by_id(db_session: AsyncSession, project_id: UUID) -> Project | None:
    result = await db_session.execute(select(Project).where(Project.id == project_id))
    return result.scalar_one_or_none()


async def get_project_by_slug(db_session: AsyncSession, slug: str) -> Project | None:
    result = await db_session.execute(select(Project).where(Project.slug == slug))
    return result.scalar_one_or_none()


async def require_project(db_session: AsyncSession, project_id: UUID) -> Project:
    project = await get_project_by_id(db_session, project_id)
    if project is None:
        raise NotFoundError(f"Project {project_id} not found")
    return project


async def create_project(
    db_session: AsyncSession,
    name: str,
    slug: str | None = None,
    description: str | None = None,
    is_public: bool = True,
) -> Project:
    """Create a project.

    Raises:
        ValidationError: If no slug can be derived from the name
        ConflictError: If the slug is already taken
    """
    slug = slugify(slug or name)
    if not slug:
        raise ValidationError(f"Cannot derive a slug from {name!r}")
    if await get_project_by_slug(db_session, slug) is not None:
        raise ConflictError(f"Project slug '{slug}' is already taken")

    project = Project(name=name, slug=slug, description=description, is_public=is_public)
    db_session.add(project)
    try:
        await db_session.commit()
    except IntegrityError as exc:
        await db_session.rollback()
        raise ConflictError(f"Project slug '{slug}' is already taken") from exc
    await db_session.refresh(project)
    return project
