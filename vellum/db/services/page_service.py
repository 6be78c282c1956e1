"""Page service for the live page tree."""

import copy
from typing import Any, Literal
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vellum.config import get_settings
from vellum.db.models import Page, PageVersion, Project
from vellum.lib import content as content_model
from vellum.lib.errors import CycleError, InvalidStateError, NotFoundError, ValidationError
from vellum.lib.hooks import (
    AFTER_PAGE_DELETE,
    AFTER_PAGE_MOVE,
    AFTER_PAGE_SAVE,
    BEFORE_PAGE_DELETE,
    BEFORE_PAGE_SAVE,
    hooks,
)
from vellum.lib.slugs import slugify, unique_slug
from vellum.lib.tree import NavigationContext, PageTree, PageTreeNode, would_create_cycle

DeleteMode = Literal["block", "reparent", "cascade"]

_UNSET = object()  # Sentinel for distinguishing None from "not provided"


def _parent_clause(parent_page_id: UUID | None):
    if parent_page_id is None:
        return Page.parent_page_id.is_(None)
    return Page.parent_page_id == parent_page_id


def _sibling_key(page: Page) -> tuple:
    return (page.order_index, page.created_at, str(page.id))


def _apply_field_updates(page: Page, fields: dict[str, Any]) -> None:
    """Set every field whose value is not the ``_UNSET`` sentinel."""
    for name, value in fields.items():
        if value is not _UNSET:
            setattr(page, name, value)


async def list_pages(
    db_session: AsyncSession,
    project_id: UUID,
    parent_page_id: UUID | None | object = _UNSET,
    published_only: bool = False,
) -> list[Page]:
    """List a project's pages in sibling display order.

    Args:
        db_session: Database session
        project_id: Owning project
        parent_page_id: Only pages under this parent (``None`` for roots)
        published_only: Only return published pages

    Returns:
        List of Page objects
    """
    query = select(Page).where(Page.project_id == project_id)
    if parent_page_id is not _UNSET:
        query = query.where(_parent_clause(parent_page_id))
    if published_only:
        query = query.where(Page.is_published == True)  # noqa: E712

    result = await db_session.execute(query.order_by(Page.order_index.asc(), Page.created_at.asc()))
    return sorted(result.scalars().all(), key=_sibling_key)


async def get_page_by_id(db_session: AsyncSession, page_id: UUID) -> Page | None:
    result = await db_session.execute(select(Page).where(Page.id == page_id))
    return result.scalar_one_or_none()


async def require_page(db_session: AsyncSession, page_id: UUID) -> Page:
    """Get a page by ID or raise :class:`NotFoundError`."""
    page = await get_page_by_id(db_session, page_id)
    if page is None:
        raise NotFoundError(f"Page {page_id} not found")
    return page


async def get_page_by_path(
    db_session: AsyncSession,
    project_id: UUID,
    path: str,
    published_only: bool = False,
) -> Page | None:
    """Resolve a slug path such as ``/guide/install`` from the project root."""
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        return None

    page = None
    parent_id = None
    for segment in segments:
        query = select(Page).where(
            Page.project_id == project_id,
            Page.slug == segment,
            _parent_clause(parent_id),
        )
        if published_only:
            query = query.where(Page.is_published == True)  # noqa: E712
        result = await db_session.execute(query)
        page = result.scalar_one_or_none()
        if page is None:
            return None
        parent_id = page.id
    return page


async def load_page_tree(
    db_session: AsyncSession,
    project_id: UUID,
    published_only: bool = False,
) -> PageTree:
    return PageTree(await list_pages(db_session, project_id, published_only=published_only))


async def get_page_tree(
    db_session: AsyncSession,
    project_id: UUID,
    published_only: bool = False,
) -> list[PageTreeNode]:
    """Return the root nodes of a project's page forest."""
    tree = await load_page_tree(db_session, project_id, published_only=published_only)
    return tree.roots


async def get_navigation_context(db_session: AsyncSession, page_id: UUID) -> NavigationContext:
    """Breadcrumbs, siblings, children and neighbours of a page."""
    page = await require_page(db_session, page_id)
    tree = await load_page_tree(db_session, page.project_id)
    return tree.navigation(page.id)


async def _sibling_slugs(
    db_session: AsyncSession,
    project_id: UUID,
    parent_page_id: UUID | None,
    exclude_id: UUID | None = None,
) -> set[str]:
    query = select(Page.slug).where(Page.project_id == project_id, _parent_clause(parent_page_id))
    if exclude_id is not None:
        query = query.where(Page.id != exclude_id)
    result = await db_session.execute(query)
    return set(result.scalars().all())


async def _next_order_index(db_session: AsyncSession, project_id: UUID, parent_page_id: UUID | None) -> int:
    result = await db_session.execute(
        select(func.max(Page.order_index)).where(Page.project_id == project_id, _parent_clause(parent_page_id))
    )
    current = result.scalar()
    return 0 if current is None else current + 1


async def _check_parent(db_session: AsyncSession, project_id: UUID, parent_page_id: UUID | None) -> Page | None:
    if parent_page_id is None:
        return None
    parent = await get_page_by_id(db_session, parent_page_id)
    if parent is None or parent.project_id != project_id:
        raise NotFoundError(f"Parent page {parent_page_id} not found in project {project_id}")
    return parent


def _clean_slug(value: str) -> str:
    slug = slugify(value, get_settings().pages.slug_max_length)
    if not slug:
        raise ValidationError(f"Cannot derive a slug from {value!r}")
    return slug


async def create_page(
    db_session: AsyncSession,
    project_id: UUID,
    title: str,
    *,
    actor_id: UUID | None,
    parent_page_id: UUID | None = None,
    slug: str | None = None,
    content: dict | None = None,
    description: str | None = None,
    icon: str | None = None,
    is_published: bool = False,
    order_index: int | None = None,
) -> Page:
    """Insert a page into a project's tree.

    Args:
        db_session: Database session
        project_id: Owning project
        title: Page title
        actor_id: User performing the change (audit fields)
        parent_page_id: Parent page in the same project, or None for a root
        slug: Requested slug (derived from the title when omitted)
        content: Block document
        description: Short description
        icon: Emoji or icon name
        is_published: Whether the page is published
        order_index: Sibling position (defaults to after the last sibling)

    Returns:
        Created Page object

    Raises:
        NotFoundError: If the project or parent does not exist
        ValidationError: If the title, slug or content is invalid
    """
    if await db_session.get(Project, project_id) is None:
        raise NotFoundError(f"Project {project_id} not found")
    await _check_parent(db_session, project_id, parent_page_id)

    if not title or not title.strip():
        raise ValidationError("Title is required")
    content_model.validate_content(content)

    slug = _clean_slug(slug or title)
    if slug in await _sibling_slugs(db_session, project_id, parent_page_id):
        raise ValidationError(f"Slug '{slug}' is already used by a sibling page")

    if order_index is None:
        order_index = await _next_order_index(db_session, project_id, parent_page_id)

    page = Page(
        project_id=project_id,
        parent_page_id=parent_page_id,
        title=title.strip(),
        slug=slug,
        content=copy.deepcopy(content),
        description=description,
        icon=icon,
        is_published=is_published,
        order_index=order_index,
        created_by=actor_id,
        updated_by=actor_id,
    )

    await hooks.do_action(BEFORE_PAGE_SAVE, page, is_new=True)

    db_session.add(page)
    try:
        await db_session.commit()
    except IntegrityError as exc:
        # A concurrent insert took the slug after the sibling check
        await db_session.rollback()
        raise ValidationError(f"Slug '{slug}' is already used by a sibling page") from exc
    await db_session.refresh(page)

    await hooks.do_action(AFTER_PAGE_SAVE, page, is_new=True)

    return page


async def update_page(
    db_session: AsyncSession,
    page_id: UUID,
    *,
    actor_id: UUID | None,
    title: str | object = _UNSET,
    slug: str | object = _UNSET,
    content: dict | None | object = _UNSET,
    description: str | None | object = _UNSET,
    icon: str | None | object = _UNSET,
    is_published: bool | object = _UNSET,
    order_index: int | object = _UNSET,
) -> Page:
    """Update a page's fields; omitted arguments are left unchanged.

    Raises:
        NotFoundError: If the page does not exist
        ValidationError: If the title, slug or content is invalid
    """
    page = await require_page(db_session, page_id)

    if title is not _UNSET:
        if not title or not str(title).strip():
            raise ValidationError("Title is required")
        title = str(title).strip()
    if slug is not _UNSET:
        slug = _clean_slug(slug)
        if slug != page.slug and slug in await _sibling_slugs(
            db_session, page.project_id, page.parent_page_id, exclude_id=page.id
        ):
            raise ValidationError(f"Slug '{slug}' is already used by a sibling page")
    if content is not _UNSET:
        content_model.validate_content(content)
        content = copy.deepcopy(content)

    await hooks.do_action(BEFORE_PAGE_SAVE, page, is_new=False)

    _apply_field_updates(
        page,
        {
            "title": title,
            "slug": slug,
            "content": content,
            "description": description,
            "icon": icon,
            "is_published": is_published,
            "order_index": order_index,
        },
    )
    page.updated_by = actor_id

    await db_session.commit()
    await db_session.refresh(page)

    await hooks.do_action(AFTER_PAGE_SAVE, page, is_new=False)

    return page


async def move_page(
    db_session: AsyncSession,
    page_id: UUID,
    new_parent_id: UUID | None,
    new_order_index: int = 0,
    *,
    actor_id: UUID | None,
) -> Page:
    """Re-parent a page and place it at ``new_order_index`` among its new siblings.

    Both the destination and the source sibling groups are renumbered
    ``0..n-1``.

    Raises:
        NotFoundError: If the page or new parent does not exist
        CycleError: If the new parent is the page itself or a descendant
        ValidationError: If the page's slug is taken under the new parent
    """
    page = await require_page(db_session, page_id)
    project_id = page.project_id

    if new_parent_id == page.id:
        raise CycleError("A page cannot be its own parent")
    await _check_parent(db_session, project_id, new_parent_id)

    result = await db_session.execute(
        select(Page.id, Page.parent_page_id).where(Page.project_id == project_id)
    )
    parents = {row.id: row.parent_page_id for row in result}
    if would_create_cycle(parents, page.id, new_parent_id):
        raise CycleError(f"Cannot move page {page.id} under its own descendant {new_parent_id}")

    old_parent_id = page.parent_page_id
    if new_parent_id != old_parent_id and page.slug in await _sibling_slugs(
        db_session, project_id, new_parent_id, exclude_id=page.id
    ):
        raise ValidationError(f"Slug '{page.slug}' is already used under the new parent")

    destination = [
        p for p in await list_pages(db_session, project_id, parent_page_id=new_parent_id) if p.id != page.id
    ]
    position = max(0, min(new_order_index, len(destination)))
    destination.insert(position, page)

    page.parent_page_id = new_parent_id
    page.updated_by = actor_id
    for index, sibling in enumerate(destination):
        sibling.order_index = index

    if new_parent_id != old_parent_id:
        source = [
            p for p in await list_pages(db_session, project_id, parent_page_id=old_parent_id) if p.id != page.id
        ]
        for index, sibling in enumerate(source):
            sibling.order_index = index

    await db_session.commit()
    await db_session.refresh(page)

    await hooks.do_action(AFTER_PAGE_MOVE, page, old_parent_id=old_parent_id)

    return page


async def duplicate_page(
    db_session: AsyncSession,
    page_id: UUID,
    *,
    actor_id: UUID | None,
    new_title: str | None = None,
    new_parent_id: UUID | None | object = _UNSET,
    include_children: bool = False,
) -> Page:
    """Copy a page, and optionally its subtree, as new unpublished pages.

    The copy gets a slug that is unique among its new siblings. Children keep
    their titles and slugs. Version history is not copied.

    Raises:
        NotFoundError: If the page or new parent does not exist
        CycleError: If the subtree would be copied into itself
    """
    original = await require_page(db_session, page_id)
    project_id = original.project_id
    parent_id = original.parent_page_id if new_parent_id is _UNSET else new_parent_id
    await _check_parent(db_session, project_id, parent_id)

    tree = await load_page_tree(db_session, project_id)
    subtree = tree.descendants(original.id) if include_children else []
    if include_children and parent_id in {node.id for node in subtree}:
        raise CycleError("Cannot copy a page's subtree into one of its own descendants")

    title = new_title or f"{original.title}{get_settings().pages.duplicate_title_suffix}"
    slug = unique_slug(_clean_slug(title), await _sibling_slugs(db_session, project_id, parent_id))

    def _copy_of(source: Page, parent: UUID | None, **overrides: Any) -> Page:
        fields = {
            "project_id": project_id,
            "parent_page_id": parent,
            "title": source.title,
            "slug": source.slug,
            "content": copy.deepcopy(source.content),
            "description": source.description,
            "icon": source.icon,
            "is_published": False,
            "order_index": source.order_index,
            "created_by": actor_id,
            "updated_by": actor_id,
        }
        fields.update(overrides)
        return Page(**fields)

    duplicate = _copy_of(
        original,
        parent_id,
        title=title,
        slug=slug,
        order_index=await _next_order_index(db_session, project_id, parent_id),
    )
    db_session.add(duplicate)
    await db_session.flush()

    new_ids = {original.id: duplicate.id}
    for node in subtree:
        child = _copy_of(node.page, new_ids[node.parent_id])
        db_session.add(child)
        await db_session.flush()
        new_ids[node.id] = child.id

    await db_session.commit()
    await db_session.refresh(duplicate)

    await hooks.do_action(AFTER_PAGE_SAVE, duplicate, is_new=True)

    return duplicate


async def delete_page(
    db_session: AsyncSession,
    page_id: UUID,
    mode: DeleteMode = "block",
    *,
    actor_id: UUID | None = None,
) -> list[UUID]:
    """Delete a page.

    Args:
        db_session: Database session
        page_id: Page UUID to delete
        mode: What to do with child pages: ``block`` refuses when there are
            children, ``reparent`` moves them up to the deleted page's parent,
            ``cascade`` deletes the whole subtree
        actor_id: User performing the change (recorded on re-parented children)

    Returns:
        IDs of the deleted pages

    Raises:
        NotFoundError: If the page does not exist
        InvalidStateError: If children block the delete, or a page to delete
            is captured by a version snapshot
    """
    page = await require_page(db_session, page_id)
    tree = await load_page_tree(db_session, page.project_id)
    node = tree.get(page.id)
    descendants = tree.descendants(page.id)

    if descendants and mode == "block":
        raise InvalidStateError(f"Page {page.id} has child pages")

    doomed = [node] + (descendants if mode == "cascade" else [])
    doomed_ids = [n.id for n in doomed]

    result = await db_session.execute(
        select(PageVersion.page_id).where(PageVersion.page_id.in_(doomed_ids)).limit(1)
    )
    if result.first() is not None:
        raise InvalidStateError("Pages captured by a version snapshot cannot be deleted")

    if mode == "reparent":
        # The deleted page still holds its slug until the flush below
        taken = await _sibling_slugs(db_session, page.project_id, page.parent_page_id)
        for child in node.children:
            child.page.slug = unique_slug(child.page.slug, taken)
            taken.add(child.page.slug)
            child.page.parent_page_id = page.parent_page_id
            child.page.updated_by = actor_id

    for doomed_node in doomed:
        await hooks.do_action(BEFORE_PAGE_DELETE, doomed_node.page)

    # Children first so no row briefly points at a deleted parent
    for doomed_node in reversed(doomed):
        await db_session.delete(doomed_node.page)
        await db_session.flush()
    await db_session.commit()

    for doomed_node in doomed:
        await hooks.do_action(AFTER_PAGE_DELETE, doomed_node.page)

    return doomed_ids


async def add_subpage_block(
    db_session: AsyncSession,
    page_id: UUID,
    target_page_id: UUID,
    *,
    actor_id: UUID | None,
    display_mode: str = content_model.DEFAULT_DISPLAY_MODE,
    position: int | None = None,
) -> Page:
    """Embed a reference to ``target_page_id`` in a page's content.

    The target's current title is cached in the block.
    """
    page = await require_page(db_session, page_id)
    target = await get_page_by_id(db_session, target_page_id)
    if target is None or target.project_id != page.project_id:
        raise NotFoundError(f"Page {target_page_id} not found in project {page.project_id}")

    content = content_model.add_subpage_block(
        page.content,
        page_id=str(target.id),
        title=target.title,
        display_mode=display_mode,
        position=position,
    )
    return await update_page(db_session, page.id, actor_id=actor_id, content=content)


async def remove_subpage_block(
    db_session: AsyncSession,
    page_id: UUID,
    block_id: str,
    *,
    actor_id: UUID | None,
) -> Page:
    """Remove a sub-page block; the referenced page itself is left alone."""
    page = await require_page(db_session, page_id)
    content = content_model.remove_subpage_block(page.content, block_id)
    return await update_page(db_session, page.id, actor_id=actor_id, content=content)


async def reorder_page_blocks(
    db_session: AsyncSession,
    page_id: UUID,
    orders: list[tuple[str, int]],
    *,
    actor_id: UUID | None,
) -> Page:
    page = await require_page(db_session, page_id)
    content = content_model.reorder_blocks(page.content, orders)
    return await update_page(db_session, page.id, actor_id=actor_id, content=content)


async def create_subpage(
    db_session: AsyncSession,
    parent_page_id: UUID,
    title: str,
    *,
    actor_id: UUID | None,
    display_mode: str = content_model.DEFAULT_DISPLAY_MODE,
    position: int | None = None,
) -> tuple[Page, Page]:
    """Create a child page and embed a sub-page block for it in the parent.

    Returns:
        Tuple of (child page, updated parent page)
    """
    parent = await require_page(db_session, parent_page_id)
    child = await create_page(
        db_session,
        parent.project_id,
        title,
        actor_id=actor_id,
        parent_page_id=parent.id,
    )
    parent = await add_subpage_block(
        db_session,
        parent.id,
        child.id,
        actor_id=actor_id,
        display_mode=display_mode,
        position=position,
    )
    return child, parent


async def search_pages(
    db_session: AsyncSession,
    query: str,
    project_id: UUID | None = None,
    published_only: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> list[Page]:
    """Case-insensitive substring search over live page titles and descriptions."""
    term = query.strip()
    if not term:
        return []

    pattern = f"%{term}%"
    filters = [or_(Page.title.ilike(pattern), Page.description.ilike(pattern))]
    if project_id is not None:
        filters.append(Page.project_id == project_id)
    if published_only:
        filters.append(Page.is_published == True)  # noqa: E712

    result = await db_session.execute(
        select(Page)
        .where(and_(*filters))
        .order_by(Page.updated_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())
