"""Read-only endpoints for public visitors; they only ever see version snapshots."""

from typing import Any
from uuid import UUID

from litestar import Controller, get
from sqlalchemy.ext.asyncio import AsyncSession

from vellum.controllers.helpers import (
    serialize_node,
    serialize_public_page,
    serialize_search_hit,
    serialize_version,
)
from vellum.db.services import public_service


class PublicController(Controller):
    path = "/public"

    @get("/projects/{project_id:uuid}/tree")
    async def tree(
        self, db_session: AsyncSession, project_id: UUID, version: str | None = None
    ) -> dict[str, Any]:
        resolved = await public_service.resolve_public_version(db_session, project_id, version)
        roots = await public_service.get_public_tree(db_session, project_id, resolved.version_number)
        return {"version": serialize_version(resolved), "tree": [serialize_node(node) for node in roots]}

    @get("/projects/{project_id:uuid}/pages/{path:path}")
    async def page(
        self, db_session: AsyncSession, project_id: UUID, path: str, version: str | None = None
    ) -> dict[str, Any]:
        public_page = await public_service.get_public_page(db_session, project_id, path, version)
        return serialize_public_page(public_page)

    @get("/search")
    async def search(
        self,
        db_session: AsyncSession,
        q: str = "",
        project_id: UUID | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        hits = await public_service.search_published(
            db_session, q, project_id=project_id, limit=limit, offset=offset
        )
        return [serialize_search_hit(hit) for hit in hits]
