"""Shared helpers for the JSON controllers: the actor dependency and serializers."""

from typing import Any
from uuid import UUID

from litestar import Request

from vellum.db.models import Page, PageVersion, Project, ProjectVersion
from vellum.db.services.public_service import PublicPage, SearchHit
from vellum.db.services.restore_service import RestoreResult
from vellum.db.services.version_service import VersionHistoryEntry, VersionStats
from vellum.lib.content import SubPageReference
from vellum.lib.diff import FieldChange, PageDiff, VersionComparison
from vellum.lib.errors import ValidationError
from vellum.lib.tree import NavigationContext, PageTreeNode

ACTOR_HEADER = "X-Actor-Id"


async def provide_actor_id(request: Request) -> UUID | None:
    """Actor id resolved upstream and forwarded in the ``X-Actor-Id`` header."""
    raw = request.headers.get(ACTOR_HEADER)
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError as exc:
        raise ValidationError(f"{ACTOR_HEADER} must be a UUID") from exc


def serialize_project(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "slug": project.slug,
        "description": project.description,
        "is_public": project.is_public,
        "created_at": project.created_at,
        "updated_at": project.updated_at,
    }


def serialize_page(page: Page, include_content: bool = True) -> dict[str, Any]:
    data = {
        "id": page.id,
        "project_id": page.project_id,
        "parent_page_id": page.parent_page_id,
        "title": page.title,
        "slug": page.slug,
        "description": page.description,
        "icon": page.icon,
        "is_published": page.is_published,
        "order_index": page.order_index,
        "has_subpage_blocks": page.has_subpage_blocks,
        "created_by": page.created_by,
        "updated_by": page.updated_by,
        "created_at": page.created_at,
        "updated_at": page.updated_at,
    }
    if include_content:
        data["content"] = page.content
    return data


def serialize_reference(reference: SubPageReference) -> dict[str, Any]:
    return {
        "block_id": reference.block_id,
        "page_id": reference.page_id,
        "title": reference.title,
        "display_mode": reference.display_mode,
        "order": reference.order,
    }


def serialize_node(node: PageTreeNode, recursive: bool = True) -> dict[str, Any]:
    data = {
        "id": node.id,
        "parent_id": node.parent_id,
        "title": node.title,
        "slug": node.slug,
        "path": node.path,
        "level": node.level,
        "order_index": node.order_index,
        "description": node.description,
        "icon": node.icon,
        "is_published": node.is_published,
        "has_content": node.has_content,
        "has_subpage_blocks": node.has_subpage_blocks,
        "content_children": [serialize_reference(ref) for ref in node.content_children],
    }
    if recursive:
        data["children"] = [serialize_node(child) for child in node.children]
    return data


def serialize_navigation(context: NavigationContext) -> dict[str, Any]:
    def _brief(node: PageTreeNode | None) -> dict[str, Any] | None:
        return None if node is None else serialize_node(node, recursive=False)

    return {
        "current": _brief(context.current),
        "breadcrumbs": [
            {"id": item.id, "title": item.title, "slug": item.slug, "path": item.path, "level": item.level}
            for item in context.breadcrumbs
        ],
        "siblings": [_brief(node) for node in context.siblings],
        "children": [_brief(node) for node in context.children],
        "previous_page": _brief(context.previous_page),
        "next_page": _brief(context.next_page),
        "content_children": [serialize_reference(ref) for ref in context.content_children],
    }


def serialize_version(version: ProjectVersion) -> dict[str, Any]:
    return {
        "id": version.id,
        "project_id": version.project_id,
        "version_number": version.version_number,
        "version_name": version.version_name,
        "release_notes": version.release_notes,
        "is_current": version.is_current,
        "is_draft": version.is_draft,
        "is_archived": version.is_archived,
        "published_at": version.published_at,
        "created_by": version.created_by,
        "created_at": version.created_at,
    }


def serialize_snapshot(snapshot: Any) -> dict[str, Any]:
    """Serialize a ``PageVersion`` or an in-memory live snapshot."""
    data = {
        "page_id": snapshot.page_id,
        "title": snapshot.title_snapshot,
        "description": snapshot.description_snapshot,
        "content": snapshot.content_snapshot,
    }
    if isinstance(snapshot, PageVersion):
        data["id"] = snapshot.id
        data["project_version_id"] = snapshot.project_version_id
        data["created_at"] = snapshot.created_at
    return data


def serialize_comparison(comparison: VersionComparison) -> dict[str, Any]:
    return {
        "summary": comparison.summary(),
        "added_pages": [serialize_snapshot(s) for s in comparison.added_pages],
        "removed_pages": [serialize_snapshot(s) for s in comparison.removed_pages],
        "modified_pages": [
            {
                "page_id": modified.page_id,
                "page_title": modified.page_title,
                "title_changed": modified.changes.title_changed,
                "content_changed": modified.changes.content_changed,
                "description_changed": modified.changes.description_changed,
                "before": serialize_snapshot(modified.before),
                "after": serialize_snapshot(modified.after),
            }
            for modified in comparison.modified_pages
        ],
    }


def serialize_page_diff(diff: PageDiff) -> dict[str, Any]:
    def _change(change: FieldChange | None) -> dict[str, Any] | None:
        return None if change is None else {"old": change.old, "new": change.new}

    return {
        "page_id": diff.page_id,
        "title": _change(diff.title),
        "description": _change(diff.description),
        "content": _change(diff.content),
    }


def serialize_restore_result(result: RestoreResult) -> dict[str, Any]:
    return {
        "restored_pages_count": result.restored_pages_count,
        "updated_pages": result.updated_pages,
        "errors": [{"page_id": error.page_id, "message": error.message} for error in result.errors],
    }


def serialize_stats(stats: VersionStats) -> dict[str, Any]:
    return {
        "version_id": stats.version_id,
        "pages_count": stats.pages_count,
        "published_pages_count": stats.published_pages_count,
        "creation_date": stats.creation_date,
        "publish_date": stats.publish_date,
    }


def serialize_history(entries: list[VersionHistoryEntry]) -> list[dict[str, Any]]:
    return [
        {"version": serialize_version(entry.version), "changes_summary": entry.changes_summary}
        for entry in entries
    ]


def serialize_public_page(page: PublicPage) -> dict[str, Any]:
    return {
        "version": serialize_version(page.version),
        "page": {**serialize_node(page.node, recursive=False), "content": page.snapshot.content_snapshot},
        "navigation": serialize_navigation(page.navigation),
    }


def serialize_search_hit(hit: SearchHit) -> dict[str, Any]:
    return {
        "project_id": hit.project_id,
        "version_number": hit.version_number,
        "page_id": hit.page_id,
        "title": hit.title,
        "description": hit.description,
        "matched_in": hit.matched_in,
    }
