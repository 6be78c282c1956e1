"""Public read boundary.

Readers only ever see version snapshots, never live pages: the current
version by default, or a chosen version that is neither a draft nor
archived, of a public project.
"""

from dataclasses import dataclass
from typing import Literal
from uuid import UUID

from sqlalchemy import case, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from vellum.db.models import PageVersion, Project, ProjectVersion
from vellum.db.services import page_service, project_service, version_service
from vellum.lib.content import extract_subpage_references, has_subpage_blocks
from vellum.lib.errors import NotFoundError
from vellum.lib.hooks import SEARCH_RESULTS, hooks
from vellum.lib.slugs import slugify
from vellum.lib.tree import NavigationContext, PageTree, PageTreeNode


@dataclass
class PublicPage:
    version: ProjectVersion
    snapshot: PageVersion
    node: PageTreeNode
    navigation: NavigationContext


@dataclass
class SearchHit:
    project_id: UUID
    version_number: str
    page_id: UUID
    title: str
    description: str | None
    matched_in: Literal["title", "description"]


async def resolve_public_version(
    db_session: AsyncSession,
    project_id: UUID,
    version_number: str | None = None,
) -> ProjectVersion:
    """Pick the version a public reader sees.

    Raises:
        NotFoundError: If the project is missing or private, has no current
            version, or the requested version is a draft, archived or unknown
    """
    project = await project_service.require_project(db_session, project_id)
    if not project.is_public:
        raise NotFoundError(f"Project {project_id} not found")

    if version_number is None:
        version = await version_service.get_current_version(db_session, project.id)
        if version is None:
            raise NotFoundError(f"Project {project_id} has no published version")
        return version

    version = await version_service.get_version_by_number(db_session, project.id, version_number)
    if version is None or version.is_draft or version.is_archived:
        raise NotFoundError(f"Version {version_number} not found")
    return version


async def _load_public_tree(
    db_session: AsyncSession,
    project_id: UUID,
    version_number: str | None,
) -> tuple[ProjectVersion, PageTree]:
    version = await resolve_public_version(db_session, project_id, version_number)
    snapshots = await version_service.list_version_pages(db_session, version.id)
    live = {page.id: page for page in await page_service.list_pages(db_session, project_id)}

    nodes = []
    for snapshot in snapshots:
        page = live.get(snapshot.page_id)
        content = snapshot.content_snapshot
        nodes.append(
            PageTreeNode(
                id=snapshot.page_id,
                title=snapshot.title_snapshot,
                slug=page.slug if page is not None else slugify(snapshot.title_snapshot),
                parent_id=page.parent_page_id if page is not None else None,
                order_index=page.order_index if page is not None else 0,
                created_at=page.created_at if page is not None else snapshot.created_at,
                description=snapshot.description_snapshot,
                icon=page.icon if page is not None else None,
                is_published=True,
                has_content=bool(content),
                has_subpage_blocks=has_subpage_blocks(content),
                content_children=extract_subpage_references(content),
                page=snapshot,
            )
        )

    return version, PageTree(nodes)


async def get_public_tree(
    db_session: AsyncSession,
    project_id: UUID,
    version_number: str | None = None,
) -> list[PageTreeNode]:
    """Return the page forest of a project's public version.

    Titles and descriptions come from the snapshots; the hierarchy comes from
    the live pages. A snapshotted page whose parent is not in the version is
    shown as a root.
    """
    _, tree = await _load_public_tree(db_session, project_id, version_number)
    return tree.roots


async def get_public_page(
    db_session: AsyncSession,
    project_id: UUID,
    path: str,
    version_number: str | None = None,
) -> PublicPage:
    """Resolve a slug path such as ``/guide/install`` in a public version.

    Raises:
        NotFoundError: If the version or the path does not resolve
    """
    version, tree = await _load_public_tree(db_session, project_id, version_number)
    node = tree.find_by_path(path)
    return PublicPage(
        version=version,
        snapshot=node.page,
        node=node,
        navigation=tree.navigation(node.id),
    )


async def search_published(
    db_session: AsyncSession,
    query: str,
    project_id: UUID | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[SearchHit]:
    """Search the current versions of public projects.

    Matching is a case-insensitive substring test on snapshot titles and
    descriptions. Title matches rank ahead of description-only matches.

    Args:
        db_session: Database session
        query: Search text
        project_id: Restrict to one project
        limit: Maximum number of hits
        offset: Number of hits to skip

    Returns:
        List of SearchHit objects, after the ``search_results`` filter
    """
    term = query.strip()
    if not term:
        return []

    pattern = f"%{term}%"
    title_match = PageVersion.title_snapshot.ilike(pattern)

    statement = (
        select(PageVersion, ProjectVersion)
        .join(ProjectVersion, ProjectVersion.id == PageVersion.project_version_id)
        .join(Project, Project.id == ProjectVersion.project_id)
        .where(
            ProjectVersion.is_current == True,  # noqa: E712
            Project.is_public == True,  # noqa: E712
            or_(title_match, PageVersion.description_snapshot.ilike(pattern)),
        )
        .order_by(case((title_match, 0), else_=1), PageVersion.title_snapshot.asc())
        .offset(offset)
        .limit(limit)
    )
    if project_id is not None:
        statement = statement.where(ProjectVersion.project_id == project_id)

    result = await db_session.execute(statement)

    needle = term.lower()
    hits = [
        SearchHit(
            project_id=version.project_id,
            version_number=version.version_number,
            page_id=snapshot.page_id,
            title=snapshot.title_snapshot,
            description=snapshot.description_snapshot,
            matched_in="title" if needle in snapshot.title_snapshot.lower() else "description",
        )
        for snapshot, version in result.all()
    ]

    return await hooks.apply_filters(SEARCH_RESULTS, hits, term)
