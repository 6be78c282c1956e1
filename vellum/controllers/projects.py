from typing import Any
from uuid import UUID

from litestar import Controller, get, post
from sqlalchemy.ext.asyncio import AsyncSession

from vellum.controllers.helpers import (
    serialize_node,
    serialize_page,
    serialize_project,
)
from vellum.db.services import page_service, project_service
from vellum.lib.errors import NotFoundError
from vellum.schemas import PageCreate, ProjectCreate


class ProjectController(Controller):
    """Projects and their live page trees."""

    path = "/api/projects"

    @get("/")
    async def list_projects(self, db_session: AsyncSession) -> list[dict[str, Any]]:
        projects = await project_service.list_projects(db_session)
        return [serialize_project(project) for project in projects]

    @post("/")
    async def create_project(self, db_session: AsyncSession, data: ProjectCreate) -> dict[str, Any]:
        project = await project_service.create_project(
            db_session,
            name=data.name,
            slug=data.slug,
            description=data.description,
            is_public=data.is_public,
        )
        return serialize_project(project)

    @get("/{project_id:uuid}")
    async def get_project(self, db_session: AsyncSession, project_id: UUID) -> dict[str, Any]:
        project = await project_service.require_project(db_session, project_id)
        return serialize_project(project)

    @get("/{project_id:uuid}/tree")
    async def get_tree(
        self, db_session: AsyncSession, project_id: UUID, published_only: bool = False
    ) -> list[dict[str, Any]]:
        """The live page forest of a project."""
        await project_service.require_project(db_session, project_id)
        roots = await page_service.get_page_tree(db_session, project_id, published_only=published_only)
        return [serialize_node(node) for node in roots]

    @get("/{project_id:uuid}/pages")
    async def list_pages(
        self,
        db_session: AsyncSession,
        project_id: UUID,
        parent_page_id: UUID | None = None,
        published_only: bool = False,
    ) -> list[dict[str, Any]]:
        """List every page of a project, or only the children of ``parent_page_id``."""
        await project_service.require_project(db_session, project_id)
        filters: dict[str, Any] = {"published_only": published_only}
        if parent_page_id is not None:
            filters["parent_page_id"] = parent_page_id
        pages = await page_service.list_pages(db_session, project_id, **filters)
        return [serialize_page(page, include_content=False) for page in pages]

    @post("/{project_id:uuid}/pages")
    async def create_page(
        self,
        db_session: AsyncSession,
        actor_id: UUID | None,
        project_id: UUID,
        data: PageCreate,
    ) -> dict[str, Any]:
        page = await page_service.create_page(
            db_session,
            project_id,
            data.title,
            actor_id=actor_id,
            parent_page_id=data.parent_page_id,
            slug=data.slug,
            content=data.content,
            description=data.description,
            icon=data.icon,
            is_published=data.is_published,
            order_index=data.order_index,
        )
        return serialize_page(page)

    @get("/{project_id:uuid}/pages/by-path/{path:path}")
    async def get_page_by_path(self, db_session: AsyncSession, project_id: UUID, path: str) -> dict[str, Any]:
        page = await page_service.get_page_by_path(db_session, project_id, path)
        if page is None:
            raise NotFoundError(f"No page at path {path}")
        return serialize_page(page)

    @get("/{project_id:uuid}/search")
    async def search_pages(
        self,
        db_session: AsyncSession,
        project_id: UUID,
        q: str = "",
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Search live pages of one project (editor view, unpublished included)."""
        pages = await page_service.search_pages(db_session, q, project_id=project_id, limit=limit, offset=offset)
        return [serialize_page(page, include_content=False) for page in pages]
