"""In-memory page hierarchy.

:class:`PageTree` indexes a flat list of page-like records (anything with
``id``, ``parent_page_id``, ``title``, ``slug`` and ``order_index``) by id
and links them into a forest. Building is pure and does no I/O, so the same
code serves the editor's live tree and the public tree assembled from version
snapshots.

Broken input never fails the build: a page whose parent is missing from the
list becomes a root, and pages caught in a parent cycle are cut loose at
their lowest-ordered member.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Hashable

from vellum.lib.content import SubPageReference, extract_subpage_references, has_subpage_blocks
from vellum.lib.errors import NotFoundError

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass
class PageTreeNode:
    """A page positioned in the forest."""

    id: Any
    title: str
    slug: str
    parent_id: Any = None
    order_index: int = 0
    created_at: datetime | None = field(default=None, compare=False)
    description: str | None = None
    icon: str | None = None
    is_published: bool = False
    has_content: bool = False
    has_subpage_blocks: bool = False
    level: int = 0
    path: str = ""
    children: list[PageTreeNode] = field(default_factory=list)
    content_children: list[SubPageReference] = field(default_factory=list)
    page: Any = field(default=None, repr=False, compare=False)

    @classmethod
    def from_page(cls, page: Any) -> PageTreeNode:
        content = getattr(page, "content", None)
        return cls(
            id=page.id,
            title=page.title,
            slug=page.slug,
            parent_id=page.parent_page_id,
            order_index=page.order_index or 0,
            created_at=getattr(page, "created_at", None),
            description=getattr(page, "description", None),
            icon=getattr(page, "icon", None),
            is_published=bool(getattr(page, "is_published", False)),
            has_content=bool(content),
            has_subpage_blocks=has_subpage_blocks(content),
            content_children=extract_subpage_references(content),
            page=page,
        )


@dataclass
class BreadcrumbItem:
    id: Any
    title: str
    slug: str
    path: str
    level: int


@dataclass
class NavigationContext:
    """Where a page sits in its tree: ancestors, siblings and children."""

    current: PageTreeNode
    breadcrumbs: list[BreadcrumbItem]
    siblings: list[PageTreeNode]
    children: list[PageTreeNode]
    previous_page: PageTreeNode | None
    next_page: PageTreeNode | None
    content_children: list[SubPageReference]


def sort_key(node: PageTreeNode) -> tuple:
    """Sibling display order: order index, then creation time, then id."""
    created = node.created_at
    if created is not None and created.tzinfo is None:
        created = created.replace(tzinfo=UTC)
    return (node.order_index, created is None, created or _EPOCH, str(node.id))


class PageTree:
    """A forest of pages indexed by id."""

    def __init__(self, pages: Iterable[Any]) -> None:
        self.nodes: dict[Any, PageTreeNode] = {}
        for page in pages:
            node = page if isinstance(page, PageTreeNode) else PageTreeNode.from_page(page)
            if node.id in self.nodes:
                logger.warning("Duplicate page %s in tree input, keeping the first", node.id)
                continue
            # Children are rebuilt from parent pointers below.
            node.children = []
            self.nodes[node.id] = node

        self._link()

    def _link(self) -> None:
        parents: dict[Any, Any] = {}
        for node in self.nodes.values():
            parent_id = node.parent_id
            if parent_id is not None and (parent_id == node.id or parent_id not in self.nodes):
                logger.warning("Page %s has missing parent %s, treating it as a root", node.id, parent_id)
                parent_id = None
            parents[node.id] = parent_id

        self._break_cycles(parents)

        self.roots: list[PageTreeNode] = []
        for node_id, parent_id in parents.items():
            node = self.nodes[node_id]
            node.parent_id = parent_id
            if parent_id is None:
                self.roots.append(node)
            else:
                self.nodes[parent_id].children.append(node)

        self.roots.sort(key=sort_key)
        for node in self.nodes.values():
            node.children.sort(key=sort_key)

        stack = [(root, 0, "") for root in reversed(self.roots)]
        while stack:
            node, level, base = stack.pop()
            node.level = level
            node.path = f"{base}/{node.slug}"
            stack.extend((child, level + 1, node.path) for child in reversed(node.children))

    def _break_cycles(self, parents: dict[Any, Any]) -> None:
        children: dict[Any, list[Any]] = {node_id: [] for node_id in parents}
        for node_id, parent_id in parents.items():
            if parent_id is not None:
                children[parent_id].append(node_id)

        reachable: set[Any] = set()

        def visit(start: Any) -> None:
            stack = [start]
            while stack:
                current = stack.pop()
                if current in reachable:
                    continue
                reachable.add(current)
                stack.extend(children[current])

        for node_id, parent_id in parents.items():
            if parent_id is None:
                visit(node_id)

        while len(reachable) < len(parents):
            stranded = [self.nodes[n] for n in parents if n not in reachable]
            # Every stranded chain ends in a loop; cut that loop, not the chain.
            walk: list[Any] = []
            current = min(stranded, key=sort_key).id
            while current not in walk:
                walk.append(current)
                current = parents[current]
            loop = [self.nodes[n] for n in walk[walk.index(current):]]
            promoted = min(loop, key=sort_key)
            logger.warning("Page %s is part of a parent cycle, treating it as a root", promoted.id)
            old_parent = parents[promoted.id]
            children[old_parent].remove(promoted.id)
            parents[promoted.id] = None
            visit(promoted.id)

    def __contains__(self, page_id: Hashable) -> bool:
        return page_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, page_id: Any) -> PageTreeNode:
        try:
            return self.nodes[page_id]
        except KeyError:
            raise NotFoundError(f"Page {page_id} not found") from None

    def ancestors(self, page_id: Any) -> list[PageTreeNode]:
        """Return the chain from the root down to, but excluding, the page."""
        chain = []
        node = self.get(page_id)
        while node.parent_id is not None:
            node = self.nodes[node.parent_id]
            chain.append(node)
        chain.reverse()
        return chain

    def descendants(self, page_id: Any) -> list[PageTreeNode]:
        """Return every node below the page in depth-first display order."""
        result = []
        stack = list(reversed(self.get(page_id).children))
        while stack:
            node = stack.pop()
            result.append(node)
            stack.extend(reversed(node.children))
        return result

    def siblings(self, page_id: Any) -> list[PageTreeNode]:
        """Return the ordered sibling group, including the page itself."""
        node = self.get(page_id)
        if node.parent_id is None:
            return list(self.roots)
        return list(self.nodes[node.parent_id].children)

    def find_by_path(self, path: str) -> PageTreeNode:
        segments = [segment for segment in path.split("/") if segment]
        if not segments:
            raise NotFoundError("Empty page path")

        candidates = self.roots
        node = None
        for segment in segments:
            node = next((c for c in candidates if c.slug == segment), None)
            if node is None:
                raise NotFoundError(f"No page at path /{'/'.join(segments)}")
            candidates = node.children
        return node

    def navigation(self, page_id: Any) -> NavigationContext:
        node = self.get(page_id)
        lineage = self.ancestors(page_id) + [node]
        breadcrumbs = [
            BreadcrumbItem(id=n.id, title=n.title, slug=n.slug, path=n.path, level=n.level)
            for n in lineage
        ]

        siblings = self.siblings(page_id)
        index = next(i for i, sibling in enumerate(siblings) if sibling.id == node.id)
        previous_page = siblings[index - 1] if index > 0 else None
        next_page = siblings[index + 1] if index < len(siblings) - 1 else None

        return NavigationContext(
            current=node,
            breadcrumbs=breadcrumbs,
            siblings=siblings,
            children=list(node.children),
            previous_page=previous_page,
            next_page=next_page,
            content_children=list(node.content_children),
        )


def build_tree(pages: Iterable[Any]) -> list[PageTreeNode]:
    """Assemble a forest from a flat list of pages and return its roots."""
    return PageTree(pages).roots


def navigation_for(pages: Iterable[Any], page_id: Any) -> NavigationContext:
    """Navigation context of one page within a flat list of pages."""
    return PageTree(pages).navigation(page_id)


def would_create_cycle(parents: Mapping[Any, Any], page_id: Any, new_parent_id: Any) -> bool:
    """Check whether re-parenting ``page_id`` under ``new_parent_id`` loops.

    ``parents`` maps each page id to its parent id (or ``None``). The walk
    follows the new parent's ancestor chain; reaching ``page_id`` means the
    new parent is the page itself or one of its descendants.
    """
    seen = set()
    current = new_parent_id
    while current is not None:
        if current == page_id:
            return True
        if current in seen:
            # Pre-existing loop above the new parent that doesn't involve the page.
            return False
        seen.add(current)
        current = parents.get(current)
    return False
