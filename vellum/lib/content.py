"""Block document helpers.

A page body is a JSON document of the form::

    {"blocks": {"<block id>": {"id": "<block id>", "type": "paragraph",
                               "data": {...}, "meta": {"order": 0}}}}

Block payloads are opaque here; only the ``type`` tag and the ordering
metadata are interpreted. Sub-page blocks (``type == "sub-page"``) are the one
exception: their ``data`` carries a reference to another page, a cached title
and a display mode.

Every mutating helper returns a new document and leaves its input untouched,
so snapshots taken from a document stay valid after the page is edited.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from vellum.lib.errors import NotFoundError, ValidationError

SUBPAGE_BLOCK_TYPE = "sub-page"
DISPLAY_MODES = ("inline", "embedded", "link")
DEFAULT_DISPLAY_MODE = "link"

Content = dict[str, Any]


@dataclass(frozen=True)
class SubPageReference:
    """A sub-page block extracted from a document."""

    block_id: str
    page_id: str
    title: str
    display_mode: str
    order: int


def _blocks(content: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if not content:
        return {}
    blocks = content.get("blocks")
    return blocks if isinstance(blocks, Mapping) else {}


def block_order(block: Mapping[str, Any]) -> int:
    """Return a block's position, reading ``meta.order`` then ``data.order``."""
    meta = block.get("meta") or {}
    if isinstance(meta, Mapping) and meta.get("order") is not None:
        return int(meta["order"])
    data = block.get("data") or {}
    if isinstance(data, Mapping) and data.get("order") is not None:
        return int(data["order"])
    return 0


def ordered_blocks(content: Mapping[str, Any] | None) -> list[tuple[str, Mapping[str, Any]]]:
    """Return ``(block_id, block)`` pairs sorted by order, ties by block id."""
    return sorted(_blocks(content).items(), key=lambda item: (block_order(item[1]), item[0]))


def iter_subpage_references(content: Mapping[str, Any] | None) -> Iterator[SubPageReference]:
    """Yield the sub-page references of a document in block order.

    Reads the given value only, so calling it again restarts the sequence.
    """
    for block_id, block in ordered_blocks(content):
        if block.get("type") != SUBPAGE_BLOCK_TYPE:
            continue
        data = block.get("data") or {}
        yield SubPageReference(
            block_id=block_id,
            page_id=str(data.get("page_id") or ""),
            title=data.get("title") or "",
            display_mode=data.get("display_mode") or DEFAULT_DISPLAY_MODE,
            order=block_order(block),
        )


def extract_subpage_references(content: Mapping[str, Any] | None) -> list[SubPageReference]:
    return list(iter_subpage_references(content))


def has_subpage_blocks(content: Mapping[str, Any] | None) -> bool:
    return any(block.get("type") == SUBPAGE_BLOCK_TYPE for block in _blocks(content).values())


def _check_display_mode(display_mode: str) -> None:
    if display_mode not in DISPLAY_MODES:
        raise ValidationError(
            f"Invalid display mode {display_mode!r}; expected one of {', '.join(DISPLAY_MODES)}"
        )


def _copy(content: Mapping[str, Any] | None) -> Content:
    new = copy.deepcopy(dict(content)) if content else {}
    blocks = new.get("blocks")
    new["blocks"] = {bid: dict(block) for bid, block in blocks.items()} if isinstance(blocks, Mapping) else {}
    return new


def _set_order(block: dict[str, Any], order: int) -> None:
    meta = dict(block.get("meta") or {})
    meta["order"] = order
    block["meta"] = meta
    if block.get("type") == SUBPAGE_BLOCK_TYPE:
        data = dict(block.get("data") or {})
        data["order"] = order
        block["data"] = data


def add_subpage_block(
    content: Mapping[str, Any] | None,
    page_id: str,
    title: str,
    display_mode: str = DEFAULT_DISPLAY_MODE,
    position: int | None = None,
    block_id: str | None = None,
) -> Content:
    """Return a copy of ``content`` with a sub-page block inserted.

    Without ``position`` the block is appended after the last block. With a
    position the blocks are renumbered ``0..n-1`` around the new one.
    """
    _check_display_mode(display_mode)
    new = _copy(content)
    blocks = new["blocks"]

    block_id = block_id or str(uuid4())
    if block_id in blocks:
        raise ValidationError(f"Block {block_id} already exists")

    block = {
        "id": block_id,
        "type": SUBPAGE_BLOCK_TYPE,
        "data": {"page_id": str(page_id), "title": title, "display_mode": display_mode},
        "meta": {},
    }

    order_ids = [bid for bid, _ in ordered_blocks(new)]
    if position is None:
        last = max((block_order(b) for b in blocks.values()), default=-1)
        _set_order(block, last + 1)
        blocks[block_id] = block
        return new

    position = max(0, min(position, len(order_ids)))
    order_ids.insert(position, block_id)
    blocks[block_id] = block
    for index, bid in enumerate(order_ids):
        _set_order(blocks[bid], index)
    return new


def update_subpage_block(
    content: Mapping[str, Any] | None,
    block_id: str,
    page_id: str | None = None,
    title: str | None = None,
    display_mode: str | None = None,
) -> Content:
    """Return a copy of ``content`` with one sub-page block's data replaced."""
    new = _copy(content)
    block = new["blocks"].get(block_id)
    if block is None or block.get("type") != SUBPAGE_BLOCK_TYPE:
        raise NotFoundError(f"Sub-page block {block_id} not found")

    if display_mode is not None:
        _check_display_mode(display_mode)

    block = dict(block)
    data = dict(block.get("data") or {})
    if page_id is not None:
        data["page_id"] = str(page_id)
    if title is not None:
        data["title"] = title
    if display_mode is not None:
        data["display_mode"] = display_mode
    block["data"] = data
    new["blocks"][block_id] = block
    return new


def remove_block(content: Mapping[str, Any] | None, block_id: str) -> Content:
    """Return a copy of ``content`` without the given block."""
    new = _copy(content)
    if block_id not in new["blocks"]:
        raise NotFoundError(f"Block {block_id} not found")
    del new["blocks"][block_id]
    return new


def remove_subpage_block(content: Mapping[str, Any] | None, block_id: str) -> Content:
    block = _blocks(content).get(block_id)
    if block is None or block.get("type") != SUBPAGE_BLOCK_TYPE:
        raise NotFoundError(f"Sub-page block {block_id} not found")
    return remove_block(content, block_id)


def reorder_blocks(
    content: Mapping[str, Any] | None,
    orders: Iterable[tuple[str, int]] | Mapping[str, int],
) -> Content:
    """Return a copy of ``content`` with block order metadata rewritten.

    ``orders`` is a sequence of ``(block_id, new_order)`` pairs or a mapping.
    Blocks not mentioned keep their current order.
    """
    pairs = list(orders.items()) if isinstance(orders, Mapping) else list(orders)
    new = _copy(content)
    blocks = new["blocks"]

    missing = [block_id for block_id, _ in pairs if block_id not in blocks]
    if missing:
        raise ValidationError(f"Unknown block id(s): {', '.join(missing)}")

    requested: dict[str, int] = {}
    for block_id, order in pairs:
        if block_id in requested:
            raise ValidationError(f"Block {block_id} is listed more than once")
        if not _is_order(order):
            raise ValidationError(f"Block {block_id} order must be an integer")
        requested[block_id] = order

    taken: dict[int, str] = {}
    for block_id, block in blocks.items():
        order = requested.get(block_id, block_order(block))
        other = taken.setdefault(order, block_id)
        if other != block_id and (block_id in requested or other in requested):
            raise ValidationError(f"Blocks {other} and {block_id} would share order {order}")

    for block_id, order in requested.items():
        _set_order(blocks[block_id], order)
    return new


def _is_order(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_content(content: Any) -> None:
    """Raise :class:`ValidationError` unless ``content`` is a block document.

    ``None`` is accepted: a page may be a pure container with no body.
    """
    if content is None:
        return
    if not isinstance(content, Mapping):
        raise ValidationError("Content must be a JSON object")

    blocks = content.get("blocks")
    if not isinstance(blocks, Mapping):
        raise ValidationError("Content must contain a 'blocks' object")

    for block_id, block in blocks.items():
        if not isinstance(block, Mapping):
            raise ValidationError(f"Block {block_id} must be an object")
        if not isinstance(block.get("type"), str) or not block["type"]:
            raise ValidationError(f"Block {block_id} has no type")
        if block.get("id") not in (None, block_id):
            raise ValidationError(f"Block {block_id} declares a different id")
        for section in ("meta", "data"):
            value = block.get(section)
            if value is None:
                continue
            if not isinstance(value, Mapping):
                raise ValidationError(f"Block {block_id} {section} must be an object")
            if value.get("order") is not None and not _is_order(value["order"]):
                raise ValidationError(f"Block {block_id} {section}.order must be an integer")
        if block["type"] == SUBPAGE_BLOCK_TYPE:
            data = block.get("data") or {}
            if not data.get("page_id"):
                raise ValidationError(f"Sub-page block {block_id} has no page_id")
            _check_display_mode(data.get("display_mode") or DEFAULT_DISPLAY_MODE)


def canonicalize(content: Any) -> str:
    """Serialize a document with sorted keys so equal values compare equal."""
    return json.dumps(content, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def content_equal(a: Any, b: Any) -> bool:
    """Deep, order-sensitive value comparison of two documents."""
    return canonicalize(a) == canonicalize(b)


def normalize_text(value: str | None) -> str:
    """Treat a missing and an empty text field as the same value."""
    return value or ""
