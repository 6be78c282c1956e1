"""Comparison of two materialized sets of page snapshots.

The functions here work on anything exposing ``page_id``, ``title_snapshot``,
``description_snapshot`` and ``content_snapshot`` (``PageVersion`` rows, or
the in-memory snapshots produced from live pages), and never touch the
database.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from vellum.lib.content import content_equal, normalize_text
from vellum.lib.errors import NotFoundError


@dataclass(frozen=True)
class PageChanges:
    title_changed: bool = False
    content_changed: bool = False
    description_changed: bool = False

    @property
    def any(self) -> bool:
        return self.title_changed or self.content_changed or self.description_changed


@dataclass
class ModifiedPage:
    page_id: Any
    page_title: str
    before: Any
    after: Any
    changes: PageChanges


@dataclass
class VersionComparison:
    added_pages: list[Any] = field(default_factory=list)
    removed_pages: list[Any] = field(default_factory=list)
    modified_pages: list[ModifiedPage] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added_pages or self.removed_pages or self.modified_pages)

    def summary(self) -> dict[str, int]:
        return {
            "pages_added": len(self.added_pages),
            "pages_modified": len(self.modified_pages),
            "pages_removed": len(self.removed_pages),
        }


@dataclass(frozen=True)
class FieldChange:
    old: Any
    new: Any


@dataclass
class PageDiff:
    """Before/after values for the fields of one page that differ."""

    page_id: Any
    title: FieldChange | None = None
    description: FieldChange | None = None
    content: FieldChange | None = None

    @property
    def has_changes(self) -> bool:
        return any((self.title, self.description, self.content))


def _by_page(snapshots: Iterable[Any]) -> dict[Any, Any]:
    mapping: dict[Any, Any] = {}
    for snapshot in snapshots:
        mapping.setdefault(snapshot.page_id, snapshot)
    return mapping


def detect_changes(before: Any, after: Any) -> PageChanges:
    """Field-level change flags between two snapshots of the same page."""
    return PageChanges(
        title_changed=before.title_snapshot != after.title_snapshot,
        content_changed=not content_equal(before.content_snapshot, after.content_snapshot),
        description_changed=(
            normalize_text(before.description_snapshot) != normalize_text(after.description_snapshot)
        ),
    )


def compare_snapshots(before: Sequence[Any], after: Sequence[Any]) -> VersionComparison:
    """Classify pages as added, removed or modified between two snapshot sets.

    Added and modified pages follow the order of ``after``; removed pages
    follow the order of ``before``. Unchanged pages appear nowhere.
    """
    before_map = _by_page(before)
    after_map = _by_page(after)

    comparison = VersionComparison()
    comparison.removed_pages = [s for page_id, s in before_map.items() if page_id not in after_map]

    for page_id, new in after_map.items():
        old = before_map.get(page_id)
        if old is None:
            comparison.added_pages.append(new)
            continue

        changes = detect_changes(old, new)
        if changes.any:
            comparison.modified_pages.append(
                ModifiedPage(
                    page_id=page_id,
                    page_title=new.title_snapshot,
                    before=old,
                    after=new,
                    changes=changes,
                )
            )

    return comparison


def page_diff(before: Sequence[Any], after: Sequence[Any], page_id: Any) -> PageDiff:
    """Return the changed fields of one page between two snapshot sets.

    A page present on only one side yields a one-sided diff where the
    missing side's values are empty.

    Raises:
        NotFoundError: If neither side has a snapshot of the page
    """
    old = _by_page(before).get(page_id)
    new = _by_page(after).get(page_id)
    if old is None and new is None:
        raise NotFoundError(f"Page {page_id} not found in either version")

    old_title = normalize_text(old.title_snapshot if old else None)
    new_title = normalize_text(new.title_snapshot if new else None)
    old_description = normalize_text(old.description_snapshot if old else None)
    new_description = normalize_text(new.description_snapshot if new else None)
    old_content = old.content_snapshot if old else None
    new_content = new.content_snapshot if new else None

    diff = PageDiff(page_id=page_id)
    if old_title != new_title:
        diff.title = FieldChange(old=old_title, new=new_title)
    if old_description != new_description:
        diff.description = FieldChange(old=old_description, new=new_description)
    if not content_equal(old_content, new_content):
        diff.content = FieldChange(old=old_content, new=new_content)
    return diff


def summarize(comparison: VersionComparison) -> dict[str, int]:
    """Counts of added, modified and removed pages."""
    return comparison.summary()
