"""Tests for snapshot comparison."""

import pytest

from factories import document, paragraph, snapshot
from vellum.lib.diff import compare_snapshots, page_diff, summarize
from vellum.lib.errors import NotFoundError

BODY = document(paragraph("p1", "One", 0), paragraph("p2", "Two", 1))
SWAPPED = document(paragraph("p1", "One", 1), paragraph("p2", "Two", 0))


@pytest.fixture
def version_a():
    return [
        snapshot("root", "Root", content=BODY),
        snapshot("child", "Child", description="About"),
        snapshot("old", "Old page"),
    ]


@pytest.fixture
def version_b():
    return [
        snapshot("root", "Root", content=SWAPPED),
        snapshot("child", "Child renamed", description="About"),
        snapshot("new", "New page"),
    ]


def _ids(items):
    return [item.page_id for item in items]


class TestCompareSnapshots:
    def test_classifies_pages(self, version_a, version_b):
        """Test that pages are sorted into added, removed and modified."""
        result = compare_snapshots(version_a, version_b)

        assert _ids(result.added_pages) == ["new"]
        assert _ids(result.removed_pages) == ["old"]
        assert _ids(result.modified_pages) == ["root", "child"]

        root, child = result.modified_pages
        assert root.changes.content_changed and not root.changes.title_changed
        assert child.changes.title_changed and not child.changes.content_changed
        assert child.page_title == "Child renamed"
        assert child.before.title_snapshot == "Child"

    def test_symmetry(self, version_a, version_b):
        """Test that swapping the sides swaps added and removed pages."""
        forward = compare_snapshots(version_a, version_b)
        backward = compare_snapshots(version_b, version_a)

        assert forward.added_pages == backward.removed_pages
        assert forward.removed_pages == backward.added_pages
        assert set(_ids(forward.modified_pages)) == set(_ids(backward.modified_pages))
        for ours, theirs in zip(
            sorted(forward.modified_pages, key=lambda m: m.page_id),
            sorted(backward.modified_pages, key=lambda m: m.page_id),
        ):
            assert ours.changes == theirs.changes

    def test_self_comparison_is_empty(self, version_a):
        """Test that a snapshot set compared with itself has no changes."""
        result = compare_snapshots(version_a, version_a)
        assert result.is_empty
        assert summarize(result) == {"pages_added": 0, "pages_modified": 0, "pages_removed": 0}

    def test_reordered_blocks_count_as_change(self):
        """Test that moving a block counts as a content change."""
        result = compare_snapshots([snapshot("p", "P", content=BODY)], [snapshot("p", "P", content=SWAPPED)])
        assert result.modified_pages[0].changes.content_changed

    def test_equal_values_are_not_changes(self):
        """Test that equal content with different key order is not a change."""
        copy_of_body = {"blocks": {k: dict(v) for k, v in BODY["blocks"].items()}}
        result = compare_snapshots([snapshot("p", "P", content=BODY)], [snapshot("p", "P", content=copy_of_body)])
        assert result.is_empty

    def test_missing_and_empty_description_are_equal(self):
        """Test that a missing and an empty description compare equal."""
        result = compare_snapshots([snapshot("p", "P", description=None)], [snapshot("p", "P", description="")])
        assert result.is_empty

    def test_summary_counts(self, version_a, version_b):
        """Test that summarize counts each kind of change."""
        assert summarize(compare_snapshots(version_a, version_b)) == {
            "pages_added": 1,
            "pages_modified": 2,
            "pages_removed": 1,
        }


class TestPageDiff:
    def test_only_changed_fields(self, version_a, version_b):
        """Test that a page diff carries only the fields that changed."""
        diff = page_diff(version_a, version_b, "child")
        assert diff.title.old == "Child"
        assert diff.title.new == "Child renamed"
        assert diff.description is None
        assert diff.content is None

    def test_one_sided_diff(self, version_a, version_b):
        """Test that a page present on one side diffs against empty values."""
        diff = page_diff(version_a, version_b, "new")
        assert diff.title.old == ""
        assert diff.title.new == "New page"

    def test_absent_on_both_sides(self, version_a, version_b):
        """Test that a page missing from both sides raises NotFoundError."""
        with pytest.raises(NotFoundError):
            page_diff(version_a, version_b, "ghost")

    def test_unchanged_page_has_no_changes(self, version_a):
        """Test that an unchanged page yields an empty diff."""
        assert not page_diff(version_a, version_a, "root").has_changes
