"""Restore service: roll live pages back to a version's snapshots.

Restores are best effort. Each page is written and committed on its own, so
a failure on one page is recorded and the remaining pages are still
restored. Live pages without a snapshot in the version are left untouched.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vellum.config import get_settings
from vellum.db.models import Page
from vellum.db.services import page_service, version_service
from vellum.lib import observability
from vellum.lib.diff import VersionComparison, compare_snapshots
from vellum.lib.hooks import AFTER_VERSION_RESTORE, hooks

logger = logging.getLogger(__name__)


@dataclass
class RestoreError:
    page_id: UUID
    message: str


@dataclass
class RestoreResult:
    restored_pages_count: int = 0
    updated_pages: list[UUID] = field(default_factory=list)
    errors: list[RestoreError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class LiveSnapshot:
    """A live page captured in the same shape as a ``PageVersion``."""

    page_id: UUID
    title_snapshot: str
    description_snapshot: str | None
    content_snapshot: Any


async def snapshot_live_pages(
    db_session: AsyncSession,
    project_id: UUID,
    published_only: bool | None = None,
) -> list[LiveSnapshot]:
    """Capture the live pages of a project without writing anything.

    Args:
        db_session: Database session
        project_id: Project to capture
        published_only: Only capture published pages; defaults to the same
            rule ``create_version`` uses

    Returns:
        List of LiveSnapshot objects in tree display order
    """
    if published_only is None:
        published_only = not get_settings().versioning.snapshot_unpublished

    pages = await page_service.list_pages(db_session, project_id, published_only=published_only)
    return [
        LiveSnapshot(
            page_id=page.id,
            title_snapshot=page.title,
            description_snapshot=page.description,
            content_snapshot=copy.deepcopy(page.content),
        )
        for page in pages
    ]


async def compare_with_live(db_session: AsyncSession, version_id: UUID) -> VersionComparison:
    """Compare a version (before) against the project's live pages (after)."""
    version = await version_service.require_version(db_session, version_id)
    snapshots = await version_service.list_version_pages(db_session, version.id)
    live = await snapshot_live_pages(db_session, version.project_id)
    return compare_snapshots(snapshots, live)


def _record_failure(result: RestoreResult, version_id: UUID, page_id: UUID, message: str) -> None:
    result.errors.append(RestoreError(page_id=page_id, message=message))
    logger.warning("Restore of page %s from version %s failed: %s", page_id, version_id, message)
    observability.warning(
        "Restore of page {page_id} failed",
        page_id=str(page_id),
        version_id=str(version_id),
        error=message,
    )


async def restore_to_version(
    db_session: AsyncSession,
    version_id: UUID,
    *,
    actor_id: UUID | None,
) -> RestoreResult:
    """Overwrite live titles, descriptions and content with a version's snapshots.

    Args:
        db_session: Database session
        version_id: Version to restore
        actor_id: User performing the restore (recorded as ``updated_by``)

    Returns:
        RestoreResult with the restored page ids and any per-page errors

    Raises:
        NotFoundError: If the version does not exist
    """
    version = await version_service.require_version(db_session, version_id)
    version_id = version.id
    snapshots = await version_service.list_version_pages(db_session, version_id)

    # Plain values only; a rollback below expires every loaded ORM instance.
    targets = [
        (s.page_id, s.title_snapshot, s.description_snapshot, copy.deepcopy(s.content_snapshot))
        for s in snapshots
    ]

    result = RestoreResult()
    with observability.span("restore_to_version", version_id=str(version_id), pages=len(targets)):
        for page_id, title, description, content in targets:
            try:
                outcome = await db_session.execute(
                    update(Page)
                    .where(Page.id == page_id)
                    .values(
                        title=title,
                        description=description,
                        content=content,
                        updated_by=actor_id,
                        updated_at=datetime.now(UTC),
                    )
                    .execution_options(synchronize_session=False)
                )
                if outcome.rowcount == 0:
                    await db_session.rollback()
                    _record_failure(result, version_id, page_id, "Live page no longer exists")
                    continue
                await db_session.commit()
            except SQLAlchemyError as exc:
                await db_session.rollback()
                _record_failure(result, version_id, page_id, str(exc))
                continue

            result.updated_pages.append(page_id)

    result.restored_pages_count = len(result.updated_pages)
    # Loaded Page instances may hold pre-restore values
    db_session.expire_all()

    logger.info(
        "Restored %d of %d pages from version %s",
        result.restored_pages_count,
        len(targets),
        version_id,
    )
    observability.info(
        "Restored {restored} of {total} pages from version {version_id}",
        restored=result.restored_pages_count,
        total=len(targets),
        failed=len(result.errors),
        version_id=str(version_id),
    )

    await hooks.do_action(AFTER_VERSION_RESTORE, version_id, result)

    return result
