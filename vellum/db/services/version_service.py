"""Version service for project version lifecycle and comparison.

A project version freezes the project's published pages into ``PageVersion``
rows. Versions move through ``draft -> current -> archived``; only a draft
that was never made current may be deleted.
"""

import copy
import logging
from dataclasses import dataclass
from datetime import datetime, UTC
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vellum.config import get_settings
from vellum.db.models import Page, PageVersion, ProjectVersion
from vellum.db.services import page_service, project_service
from vellum.lib import observability, semver
from vellum.lib.diff import PageDiff, VersionComparison, compare_snapshots, page_diff, summarize
from vellum.lib.errors import ConflictError, InvalidStateError, NotFoundError
from vellum.lib.hooks import (
    AFTER_VERSION_ARCHIVE,
    AFTER_VERSION_CREATE,
    AFTER_VERSION_DELETE,
    AFTER_VERSION_PUBLISH,
    VERSION_SNAPSHOT,
    hooks,
)

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class VersionStats:
    version_id: UUID
    pages_count: int
    published_pages_count: int
    creation_date: datetime
    publish_date: datetime | None


@dataclass
class VersionHistoryEntry:
    version: ProjectVersion
    changes_summary: dict[str, int]


def _semantic_key(version: ProjectVersion) -> tuple:
    if semver.is_valid(version.version_number):
        return (1, semver.VersionNumber.parse(version.version_number), version.created_at)
    return (0, semver.VersionNumber(0, 0, 0), version.created_at)


async def list_versions(
    db_session: AsyncSession,
    project_id: UUID,
    include_archived: bool = False,
) -> list[ProjectVersion]:
    """List a project's versions, highest version number first.

    Args:
        db_session: Database session
        project_id: Owning project
        include_archived: Include archived versions

    Returns:
        List of ProjectVersion objects
    """
    query = select(ProjectVersion).where(ProjectVersion.project_id == project_id)
    if not include_archived:
        query = query.where(ProjectVersion.is_archived == False)  # noqa: E712

    result = await db_session.execute(query)
    return sorted(result.scalars().all(), key=_semantic_key, reverse=True)


async def get_version_by_id(db_session: AsyncSession, version_id: UUID) -> ProjectVersion | None:
    result = await db_session.execute(select(ProjectVersion).where(ProjectVersion.id == version_id))
    return result.scalar_one_or_none()


async def require_version(db_session: AsyncSession, version_id: UUID) -> ProjectVersion:
    """Get a version by ID or raise :class:`NotFoundError`."""
    version = await get_version_by_id(db_session, version_id)
    if version is None:
        raise NotFoundError(f"Version {version_id} not found")
    return version


async def get_version_by_number(
    db_session: AsyncSession,
    project_id: UUID,
    version_number: str,
) -> ProjectVersion | None:
    result = await db_session.execute(
        select(ProjectVersion).where(
            ProjectVersion.project_id == project_id,
            ProjectVersion.version_number == version_number,
        )
    )
    return result.scalar_one_or_none()


async def get_current_version(db_session: AsyncSession, project_id: UUID) -> ProjectVersion | None:
    result = await db_session.execute(
        select(ProjectVersion).where(
            ProjectVersion.project_id == project_id,
            ProjectVersion.is_current == True,  # noqa: E712
        )
    )
    return result.scalar_one_or_none()


async def list_version_pages(db_session: AsyncSession, version_id: UUID) -> list[PageVersion]:
    """Return every page snapshot of a version."""
    result = await db_session.execute(
        select(PageVersion)
        .where(PageVersion.project_version_id == version_id)
        .order_by(PageVersion.created_at.asc(), PageVersion.title_snapshot.asc())
    )
    return list(result.scalars().all())


async def get_page_in_version(
    db_session: AsyncSession,
    version_id: UUID,
    page_id: UUID,
) -> PageVersion | None:
    result = await db_session.execute(
        select(PageVersion).where(
            PageVersion.project_version_id == version_id,
            PageVersion.page_id == page_id,
        )
    )
    return result.scalar_one_or_none()


async def create_version(
    db_session: AsyncSession,
    project_id: UUID,
    version_number: str,
    *,
    actor_id: UUID | None,
    version_name: str | None = None,
    release_notes: str | None = None,
) -> ProjectVersion:
    """Cut a new draft version from the project's published pages.

    Title, description and content are copied by value, so later edits to
    the live pages never reach the snapshots. The version row and all of its
    snapshots are committed together.

    Args:
        db_session: Database session
        project_id: Project to snapshot
        version_number: ``MAJOR.MINOR.PATCH``
        actor_id: User cutting the version
        version_name: Optional human name ("Winter Release")
        release_notes: Optional notes

    Returns:
        The created draft ProjectVersion

    Raises:
        NotFoundError: If the project does not exist
        ValidationError: If the version number is malformed
        ConflictError: If the project already has this version number
    """
    await project_service.require_project(db_session, project_id)
    number = str(semver.VersionNumber.parse(version_number))

    if await get_version_by_number(db_session, project_id, number) is not None:
        raise ConflictError(f"Version {number} already exists for this project")

    snapshot_all = get_settings().versioning.snapshot_unpublished
    pages = await page_service.list_pages(db_session, project_id, published_only=not snapshot_all)

    version = ProjectVersion(
        project_id=project_id,
        version_number=number,
        version_name=version_name,
        release_notes=release_notes,
        is_draft=True,
        is_current=False,
        is_archived=False,
        created_by=actor_id,
    )

    try:
        db_session.add(version)
        await db_session.flush()

        for page in pages:
            payload = {
                "title_snapshot": page.title,
                "description_snapshot": page.description,
                "content_snapshot": copy.deepcopy(page.content),
            }
            payload = await hooks.apply_filters(VERSION_SNAPSHOT, payload, page)
            db_session.add(PageVersion(project_version_id=version.id, page_id=page.id, **payload))

        await db_session.commit()
    except IntegrityError as exc:
        await db_session.rollback()
        raise ConflictError(f"Version {number} already exists for this project") from exc
    except Exception:
        # Never leave a half-built version pending in the caller's session
        await db_session.rollback()
        raise

    await db_session.refresh(version)
    logger.info("Created version %s of project %s with %d page snapshots", number, project_id, len(pages))
    observability.version_event("created", version, snapshots=len(pages))

    await hooks.do_action(AFTER_VERSION_CREATE, version)

    return version


async def update_version(
    db_session: AsyncSession,
    version_id: UUID,
    version_name: str | None | object = _UNSET,
    release_notes: str | None | object = _UNSET,
) -> ProjectVersion:
    """Edit a version's name or release notes. Snapshots are never edited."""
    version = await require_version(db_session, version_id)
    if version.is_archived:
        raise InvalidStateError("Archived versions cannot be edited")

    if version_name is not _UNSET:
        version.version_name = version_name
    if release_notes is not _UNSET:
        version.release_notes = release_notes

    await db_session.commit()
    await db_session.refresh(version)
    return version


async def publish_version(db_session: AsyncSession, version_id: UUID) -> ProjectVersion:
    """Make a version the project's current version.

    The previous current version is demoted in the same transaction, so no
    reader ever sees zero or two current versions.

    Raises:
        NotFoundError: If the version does not exist
        InvalidStateError: If the version is archived
        ConflictError: If another version of the project became current first
    """
    version = await require_version(db_session, version_id)
    if version.is_archived:
        raise InvalidStateError("Archived versions cannot be published")
    if version.is_current:
        return version

    await db_session.execute(
        update(ProjectVersion)
        .where(
            ProjectVersion.project_id == version.project_id,
            ProjectVersion.is_current == True,  # noqa: E712
            ProjectVersion.id != version.id,
        )
        .values(is_current=False)
    )

    version.is_current = True
    version.is_draft = False
    version.published_at = datetime.now(UTC)

    try:
        await db_session.commit()
    except IntegrityError as exc:
        # Another publish for this project committed first
        await db_session.rollback()
        raise ConflictError(f"Version {version_id} lost a concurrent publish") from exc
    await db_session.refresh(version)
    logger.info("Published version %s of project %s", version.version_number, version.project_id)
    observability.version_event("published", version)

    await hooks.do_action(AFTER_VERSION_PUBLISH, version)

    return version


async def archive_version(db_session: AsyncSession, version_id: UUID) -> ProjectVersion:
    """Archive a version; a current version stops being current."""
    version = await require_version(db_session, version_id)
    if version.is_archived:
        return version

    version.is_archived = True
    version.is_current = False

    await db_session.commit()
    await db_session.refresh(version)
    observability.version_event("archived", version)

    await hooks.do_action(AFTER_VERSION_ARCHIVE, version)

    return version


async def unarchive_version(db_session: AsyncSession, version_id: UUID) -> ProjectVersion:
    version = await require_version(db_session, version_id)
    version.is_archived = False
    await db_session.commit()
    await db_session.refresh(version)
    return version


async def delete_version(db_session: AsyncSession, version_id: UUID) -> None:
    """Delete a draft version together with its page snapshots.

    Raises:
        NotFoundError: If the version does not exist
        InvalidStateError: If the version is not a draft or is current
    """
    version = await require_version(db_session, version_id)
    if not version.is_draft:
        raise InvalidStateError("Only draft versions can be deleted")
    if version.is_current:
        raise InvalidStateError("The current version cannot be deleted")

    await db_session.execute(delete(PageVersion).where(PageVersion.project_version_id == version.id))
    await db_session.delete(version)
    await db_session.commit()
    observability.version_event("deleted", version)

    await hooks.do_action(AFTER_VERSION_DELETE, version)


async def suggest_next_version(
    db_session: AsyncSession,
    project_id: UUID,
    bump: semver.Bump | None = None,
) -> str:
    """Suggest the number following the project's highest version.

    Archived versions count, so the suggestion never collides with an
    existing number.
    """
    result = await db_session.execute(
        select(ProjectVersion.version_number).where(ProjectVersion.project_id == project_id)
    )
    return semver.suggest_next(result.scalars().all(), bump or get_settings().versioning.default_bump)


async def compare_versions(
    db_session: AsyncSession,
    version_a_id: UUID,
    version_b_id: UUID,
) -> VersionComparison:
    """Compare two versions: pages added, removed and modified from A to B."""
    await require_version(db_session, version_a_id)
    await require_version(db_session, version_b_id)
    return compare_snapshots(
        await list_version_pages(db_session, version_a_id),
        await list_version_pages(db_session, version_b_id),
    )


async def get_page_diff(
    db_session: AsyncSession,
    version_a_id: UUID,
    version_b_id: UUID,
    page_id: UUID,
) -> PageDiff:
    """Before/after values of one page's changed fields between two versions."""
    await require_version(db_session, version_a_id)
    await require_version(db_session, version_b_id)

    before = await get_page_in_version(db_session, version_a_id, page_id)
    after = await get_page_in_version(db_session, version_b_id, page_id)
    return page_diff([s for s in (before,) if s], [s for s in (after,) if s], page_id)


async def get_version_stats(db_session: AsyncSession, version_id: UUID) -> VersionStats:
    version = await require_version(db_session, version_id)

    pages_count = await db_session.scalar(
        select(func.count(PageVersion.id)).where(PageVersion.project_version_id == version_id)
    )
    published_count = await db_session.scalar(
        select(func.count(PageVersion.id))
        .join(Page, Page.id == PageVersion.page_id)
        .where(PageVersion.project_version_id == version_id, Page.is_published == True)  # noqa: E712
    )

    return VersionStats(
        version_id=version.id,
        pages_count=pages_count or 0,
        published_pages_count=published_count or 0,
        creation_date=version.created_at,
        publish_date=version.published_at,
    )


async def get_version_history(db_session: AsyncSession, project_id: UUID) -> list[VersionHistoryEntry]:
    """Summarize what changed between each pair of consecutive versions.

    Entries are newest first; the oldest version has no predecessor and is
    not listed.
    """
    versions = await list_versions(db_session, project_id, include_archived=True)

    history = []
    for current, previous in zip(versions, versions[1:]):
        comparison = await compare_versions(db_session, previous.id, current.id)
        history.append(VersionHistoryEntry(version=current, changes_summary=summarize(comparison)))
    return history
