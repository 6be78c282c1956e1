from typing import Any
from uuid import UUID

from litestar import Controller, delete, get, patch, post
from sqlalchemy.ext.asyncio import AsyncSession

from vellum.controllers.helpers import (
    serialize_comparison,
    serialize_history,
    serialize_page_diff,
    serialize_restore_result,
    serialize_snapshot,
    serialize_stats,
    serialize_version,
)
from vellum.db.services import project_service, restore_service, version_service
from vellum.lib.errors import NotFoundError, ValidationError
from vellum.lib.semver import BUMPS
from vellum.schemas import VersionCreate, VersionUpdate


class VersionController(Controller):
    """Version lifecycle, comparison and restore."""

    path = "/api"

    @get("/projects/{project_id:uuid}/versions")
    async def list_versions(
        self, db_session: AsyncSession, project_id: UUID, include_archived: bool = False
    ) -> list[dict[str, Any]]:
        await project_service.require_project(db_session, project_id)
        versions = await version_service.list_versions(db_session, project_id, include_archived=include_archived)
        return [serialize_version(version) for version in versions]

    @post("/projects/{project_id:uuid}/versions")
    async def create_version(
        self,
        db_session: AsyncSession,
        actor_id: UUID | None,
        project_id: UUID,
        data: VersionCreate,
    ) -> dict[str, Any]:
        number = data.version_number
        if number is None:
            number = await version_service.suggest_next_version(db_session, project_id, data.bump)

        version = await version_service.create_version(
            db_session,
            project_id,
            number,
            actor_id=actor_id,
            version_name=data.version_name,
            release_notes=data.release_notes,
        )
        return serialize_version(version)

    @get("/projects/{project_id:uuid}/versions/suggest")
    async def suggest_version(
        self, db_session: AsyncSession, project_id: UUID, bump: str | None = None
    ) -> dict[str, Any]:
        if bump is not None and bump not in BUMPS:
            raise ValidationError(f"Unknown bump '{bump}'")
        await project_service.require_project(db_session, project_id)
        return {"version_number": await version_service.suggest_next_version(db_session, project_id, bump)}

    @get("/projects/{project_id:uuid}/versions/current")
    async def current_version(self, db_session: AsyncSession, project_id: UUID) -> dict[str, Any]:
        version = await version_service.get_current_version(db_session, project_id)
        if version is None:
            raise NotFoundError(f"Project {project_id} has no current version")
        return serialize_version(version)

    @get("/projects/{project_id:uuid}/versions/history")
    async def version_history(self, db_session: AsyncSession, project_id: UUID) -> list[dict[str, Any]]:
        await project_service.require_project(db_session, project_id)
        return serialize_history(await version_service.get_version_history(db_session, project_id))

    @get("/versions/{version_id:uuid}")
    async def get_version(self, db_session: AsyncSession, version_id: UUID) -> dict[str, Any]:
        return serialize_version(await version_service.require_version(db_session, version_id))

    @patch("/versions/{version_id:uuid}")
    async def update_version(
        self, db_session: AsyncSession, version_id: UUID, data: VersionUpdate
    ) -> dict[str, Any]:
        version = await version_service.update_version(db_session, version_id, **data.changes())
        return serialize_version(version)

    @post("/versions/{version_id:uuid}/publish", status_code=200)
    async def publish_version(self, db_session: AsyncSession, version_id: UUID) -> dict[str, Any]:
        return serialize_version(await version_service.publish_version(db_session, version_id))

    @post("/versions/{version_id:uuid}/archive", status_code=200)
    async def archive_version(self, db_session: AsyncSession, version_id: UUID) -> dict[str, Any]:
        return serialize_version(await version_service.archive_version(db_session, version_id))

    @post("/versions/{version_id:uuid}/unarchive", status_code=200)
    async def unarchive_version(self, db_session: AsyncSession, version_id: UUID) -> dict[str, Any]:
        return serialize_version(await version_service.unarchive_version(db_session, version_id))

    @delete("/versions/{version_id:uuid}")
    async def delete_version(self, db_session: AsyncSession, version_id: UUID) -> None:
        await version_service.delete_version(db_session, version_id)

    @get("/versions/{version_id:uuid}/pages")
    async def version_pages(self, db_session: AsyncSession, version_id: UUID) -> list[dict[str, Any]]:
        await version_service.require_version(db_session, version_id)
        snapshots = await version_service.list_version_pages(db_session, version_id)
        return [serialize_snapshot(snapshot) for snapshot in snapshots]

    @get("/versions/{version_id:uuid}/pages/{page_id:uuid}")
    async def version_page(self, db_session: AsyncSession, version_id: UUID, page_id: UUID) -> dict[str, Any]:
        snapshot = await version_service.get_page_in_version(db_session, version_id, page_id)
        if snapshot is None:
            raise NotFoundError(f"Page {page_id} has no snapshot in version {version_id}")
        return serialize_snapshot(snapshot)

    @get("/versions/{version_id:uuid}/stats")
    async def version_stats(self, db_session: AsyncSession, version_id: UUID) -> dict[str, Any]:
        return serialize_stats(await version_service.get_version_stats(db_session, version_id))

    @get("/versions/compare/{version_a_id:uuid}/{version_b_id:uuid}")
    async def compare_versions(
        self, db_session: AsyncSession, version_a_id: UUID, version_b_id: UUID
    ) -> dict[str, Any]:
        """Pages added, removed and modified going from version A to version B."""
        comparison = await version_service.compare_versions(db_session, version_a_id, version_b_id)
        return serialize_comparison(comparison)

    @get("/versions/compare/{version_a_id:uuid}/{version_b_id:uuid}/pages/{page_id:uuid}")
    async def page_diff(
        self,
        db_session: AsyncSession,
        version_a_id: UUID,
        version_b_id: UUID,
        page_id: UUID,
    ) -> dict[str, Any]:
        diff = await version_service.get_page_diff(db_session, version_a_id, version_b_id, page_id)
        return serialize_page_diff(diff)

    @get("/versions/{version_id:uuid}/compare-live")
    async def compare_with_live(self, db_session: AsyncSession, version_id: UUID) -> dict[str, Any]:
        """What a restore of this version would change on the live pages, reversed."""
        comparison = await restore_service.compare_with_live(db_session, version_id)
        return serialize_comparison(comparison)

    @post("/versions/{version_id:uuid}/restore", status_code=200)
    async def restore_version(
        self, db_session: AsyncSession, actor_id: UUID | None, version_id: UUID
    ) -> dict[str, Any]:
        result = await restore_service.restore_to_version(db_session, version_id, actor_id=actor_id)
        return serialize_restore_result(result)
