"""Tests for block document helpers."""

import copy

import pytest

from factories import document, paragraph
from vellum.lib import content as content_model
from vellum.lib.errors import NotFoundError, ValidationError


@pytest.fixture
def doc():
    return document(paragraph("p1", "Intro", 0), paragraph("p2", "Body", 1))


class TestSubPageReferences:
    def test_null_content_has_no_references(self):
        """Test that NULL content has no sub-page references."""
        assert list(content_model.iter_subpage_references(None)) == []
        assert content_model.has_subpage_blocks(None) is False

    def test_references_follow_block_order(self, doc):
        """Test that references come back in block order."""
        content = content_model.add_subpage_block(doc, "page-b", "B", block_id="sb")
        content = content_model.add_subpage_block(content, "page-a", "A", position=0, block_id="sa")

        refs = content_model.extract_subpage_references(content)

        assert [ref.page_id for ref in refs] == ["page-a", "page-b"]
        assert refs[0].order == 0
        assert refs[0].display_mode == "link"

    def test_iteration_is_restartable(self, doc):
        """Test that iterating twice yields the same references."""
        content = content_model.add_subpage_block(doc, "page-a", "A")
        first = list(content_model.iter_subpage_references(content))
        second = list(content_model.iter_subpage_references(content))
        assert first == second
        assert len(first) == 1

    def test_iteration_is_lazy(self, doc):
        """Test that references are produced by a generator."""
        refs = content_model.iter_subpage_references(doc)
        assert iter(refs) is refs

    def test_has_subpage_blocks(self, doc):
        """Test detection of sub-page blocks."""
        assert content_model.has_subpage_blocks(doc) is False
        assert content_model.has_subpage_blocks(content_model.add_subpage_block(doc, "x", "X")) is True


class TestAddSubPageBlock:
    def test_appends_after_last_block(self, doc):
        """Test that a block without position goes after the last one."""
        content = content_model.add_subpage_block(doc, "page-a", "A", block_id="sub")
        block = content["blocks"]["sub"]
        assert block["type"] == "sub-page"
        assert block["meta"]["order"] == 2
        assert block["data"] == {"page_id": "page-a", "title": "A", "display_mode": "link", "order": 2}

    def test_insert_at_position_renumbers(self, doc):
        """Test that inserting at a position renumbers the other blocks."""
        content = content_model.add_subpage_block(doc, "page-a", "A", position=1, block_id="sub")
        orders = {bid: content_model.block_order(b) for bid, b in content["blocks"].items()}
        assert orders == {"p1": 0, "sub": 1, "p2": 2}

    def test_input_is_not_mutated(self, doc):
        """Test that adding a block leaves the input document untouched."""
        before = copy.deepcopy(doc)
        content_model.add_subpage_block(doc, "page-a", "A", position=0)
        assert doc == before

    def test_rejects_unknown_display_mode(self, doc):
        """Test that an unknown display mode is refused."""
        with pytest.raises(ValidationError):
            content_model.add_subpage_block(doc, "page-a", "A", display_mode="popup")

    def test_rejects_duplicate_block_id(self, doc):
        """Test that a block id already in the document is refused."""
        with pytest.raises(ValidationError):
            content_model.add_subpage_block(doc, "page-a", "A", block_id="p1")

    def test_starts_document_from_null(self):
        """Test that a block can be added to NULL content."""
        content = content_model.add_subpage_block(None, "page-a", "A", display_mode="embedded")
        (ref,) = content_model.extract_subpage_references(content)
        assert ref.display_mode == "embedded"
        assert ref.order == 0


class TestUpdateAndRemove:
    def test_update_changes_only_given_fields(self, doc):
        """Test that updating a sub-page block keeps the fields not given."""
        content = content_model.add_subpage_block(doc, "page-a", "A", block_id="sub")
        updated = content_model.update_subpage_block(content, "sub", title="Renamed", display_mode="inline")

        data = updated["blocks"]["sub"]["data"]
        assert data["title"] == "Renamed"
        assert data["display_mode"] == "inline"
        assert data["page_id"] == "page-a"
        assert content["blocks"]["sub"]["data"]["title"] == "A"

    def test_update_missing_block(self, doc):
        """Test that updating an unknown block raises NotFoundError."""
        with pytest.raises(NotFoundError):
            content_model.update_subpage_block(doc, "nope", title="X")

    def test_update_refuses_non_subpage_block(self, doc):
        """Test that only sub-page blocks can be updated."""
        with pytest.raises(NotFoundError):
            content_model.update_subpage_block(doc, "p1", title="X")

    def test_remove_block(self, doc):
        """Test that a removed block is gone from the copy only."""
        content = content_model.remove_block(doc, "p1")
        assert list(content["blocks"]) == ["p2"]
        assert "p1" in doc["blocks"]

    def test_remove_missing_block(self, doc):
        """Test that removing an unknown block raises NotFoundError."""
        with pytest.raises(NotFoundError):
            content_model.remove_block(doc, "nope")

    def test_remove_subpage_block_refuses_paragraph(self, doc):
        """Test that remove_subpage_block refuses other block types."""
        with pytest.raises(NotFoundError):
            content_model.remove_subpage_block(doc, "p1")


class TestReorderBlocks:
    def test_rewrites_order(self, doc):
        """Test that reordering swaps block positions without touching the input."""
        content = content_model.reorder_blocks(doc, [("p1", 1), ("p2", 0)])
        assert [bid for bid, _ in content_model.ordered_blocks(content)] == ["p2", "p1"]
        assert [bid for bid, _ in content_model.ordered_blocks(doc)] == ["p1", "p2"]

    def test_accepts_mapping(self, doc):
        """Test that orders may be given as a mapping."""
        content = content_model.reorder_blocks(doc, {"p1": 5})
        assert content["blocks"]["p1"]["meta"]["order"] == 5

    def test_unknown_block_is_rejected(self, doc):
        """Test that an id naming no block is refused."""
        with pytest.raises(ValidationError, match="ghost"):
            content_model.reorder_blocks(doc, [("ghost", 0)])

    def test_colliding_orders_are_rejected(self):
        """Test that two blocks cannot be moved onto the same position."""
        doc = document(paragraph("a", "A", 0), paragraph("b", "B", 1), paragraph("c", "C", 2))
        with pytest.raises(ValidationError, match="share order 1"):
            content_model.reorder_blocks(doc, [("a", 1), ("b", 1), ("c", 1)])

    def test_collision_with_untouched_block_is_rejected(self, doc):
        """Test that moving onto an unlisted block's position is refused."""
        with pytest.raises(ValidationError, match="share order 1"):
            content_model.reorder_blocks(doc, [("p1", 1)])

    def test_repeated_block_id_is_rejected(self, doc):
        """Test that a block listed twice is refused instead of the last entry winning."""
        with pytest.raises(ValidationError, match="more than once"):
            content_model.reorder_blocks(doc, [("p1", 2), ("p1", 0)])

    @pytest.mark.parametrize("order", ["1", 1.5, True, None])
    def test_non_integer_order_is_rejected(self, doc, order):
        """Test that orders must be plain integers."""
        with pytest.raises(ValidationError, match="integer"):
            content_model.reorder_blocks(doc, [("p1", order)])


class TestValidateContent:
    def test_null_is_valid(self):
        """Test that NULL content is valid."""
        content_model.validate_content(None)

    @pytest.mark.parametrize(
        "bad",
        [
            "text",
            {"no_blocks": {}},
            {"blocks": []},
            {"blocks": {"a": "not a block"}},
            {"blocks": {"a": {"id": "a"}}},
            {"blocks": {"a": {"id": "b", "type": "paragraph"}}},
            {"blocks": {"a": {"id": "a", "type": "sub-page", "data": {}}}},
            {"blocks": {"a": {"id": "a", "type": "sub-page", "data": {"page_id": "x", "display_mode": "popup"}}}},
        ],
    )
    def test_rejects_malformed_documents(self, bad):
        """Test that malformed documents raise ValidationError."""
        with pytest.raises(ValidationError):
            content_model.validate_content(bad)

    def test_accepts_well_formed_document(self, doc):
        """Test that a document with sub-page blocks validates."""
        content_model.validate_content(content_model.add_subpage_block(doc, "page-a", "A"))

    @pytest.mark.parametrize(
        "block",
        [
            {"id": "a", "type": "paragraph", "meta": {"order": "first"}},
            {"id": "a", "type": "paragraph", "meta": {"order": True}},
            {"id": "a", "type": "paragraph", "meta": {"order": 1.5}},
            {"id": "a", "type": "paragraph", "data": {"order": "2"}},
            {"id": "a", "type": "paragraph", "meta": "first"},
            {"id": "a", "type": "paragraph", "data": ["text"]},
        ],
    )
    def test_rejects_non_integer_order(self, block):
        """Test that ordering metadata must be a plain integer inside an object."""
        with pytest.raises(ValidationError):
            content_model.validate_content({"blocks": {"a": block}})

    def test_missing_order_is_allowed(self):
        """Test that a block without ordering metadata is valid."""
        content_model.validate_content({"blocks": {"a": {"id": "a", "type": "paragraph", "data": {"text": "x"}}}})


class TestEquality:
    def test_key_order_does_not_matter(self):
        """Test that key order does not affect equality."""
        a = {"blocks": {"x": {"type": "paragraph", "id": "x", "meta": {"order": 0}}}}
        b = {"blocks": {"x": {"id": "x", "meta": {"order": 0}, "type": "paragraph"}}}
        assert content_model.content_equal(a, b)

    def test_block_order_matters(self, doc):
        """Test that block order affects equality."""
        swapped = content_model.reorder_blocks(doc, [("p1", 1), ("p2", 0)])
        assert not content_model.content_equal(doc, swapped)

    def test_null_only_equals_null(self):
        """Test that NULL equals only NULL."""
        assert content_model.content_equal(None, None)
        assert not content_model.content_equal(None, {"blocks": {}})

    def test_normalize_text(self):
        """Test that None and an empty string normalize alike."""
        assert content_model.normalize_text(None) == content_model.normalize_text("")
