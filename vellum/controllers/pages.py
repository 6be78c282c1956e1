from typing import Any, get_args
from uuid import UUID

from litestar import Controller, delete, get, patch, post, put
from sqlalchemy.ext.asyncio import AsyncSession

from vellum.controllers.helpers import serialize_navigation, serialize_page
from vellum.db.services import page_service
from vellum.lib.errors import ValidationError
from vellum.schemas import (
    BlockReorder,
    PageDuplicate,
    PageMove,
    PageUpdate,
    SubPageBlockCreate,
    SubPageCreate,
)


class PageController(Controller):
    """Editor operations on single pages and their content blocks."""

    path = "/api/pages"

    @get("/{page_id:uuid}")
    async def get_page(self, db_session: AsyncSession, page_id: UUID) -> dict[str, Any]:
        page = await page_service.require_page(db_session, page_id)
        return serialize_page(page)

    @patch("/{page_id:uuid}")
    async def update_page(
        self,
        db_session: AsyncSession,
        actor_id: UUID | None,
        page_id: UUID,
        data: PageUpdate,
    ) -> dict[str, Any]:
        changes = data.changes()
        if "title" in changes and changes["title"] is None:
            raise ValidationError("Title is required")
        for name in ("slug", "is_published", "order_index"):
            if name in changes and changes[name] is None:
                raise ValidationError(f"{name} cannot be null")

        page = await page_service.update_page(db_session, page_id, actor_id=actor_id, **changes)
        return serialize_page(page)

    @post("/{page_id:uuid}/move", status_code=200)
    async def move_page(
        self,
        db_session: AsyncSession,
        actor_id: UUID | None,
        page_id: UUID,
        data: PageMove,
    ) -> dict[str, Any]:
        page = await page_service.move_page(
            db_session,
            page_id,
            data.new_parent_id,
            data.new_order_index,
            actor_id=actor_id,
        )
        return serialize_page(page)

    @post("/{page_id:uuid}/duplicate")
    async def duplicate_page(
        self,
        db_session: AsyncSession,
        actor_id: UUID | None,
        page_id: UUID,
        data: PageDuplicate,
    ) -> dict[str, Any]:
        options: dict[str, Any] = {"new_title": data.new_title, "include_children": data.include_children}
        # An explicit null moves the copy to the root
        if "new_parent_id" in data.model_fields_set:
            options["new_parent_id"] = data.new_parent_id

        page = await page_service.duplicate_page(db_session, page_id, actor_id=actor_id, **options)
        return serialize_page(page)

    @delete("/{page_id:uuid}", status_code=200)
    async def delete_page(
        self,
        db_session: AsyncSession,
        actor_id: UUID | None,
        page_id: UUID,
        mode: str = "block",
    ) -> dict[str, Any]:
        if mode not in get_args(page_service.DeleteMode):
            raise ValidationError(f"Unknown delete mode '{mode}'")
        deleted = await page_service.delete_page(db_session, page_id, mode, actor_id=actor_id)
        return {"deleted": deleted}

    @get("/{page_id:uuid}/navigation")
    async def navigation(self, db_session: AsyncSession, page_id: UUID) -> dict[str, Any]:
        context = await page_service.get_navigation_context(db_session, page_id)
        return serialize_navigation(context)

    @post("/{page_id:uuid}/subpages")
    async def create_subpage(
        self,
        db_session: AsyncSession,
        actor_id: UUID | None,
        page_id: UUID,
        data: SubPageCreate,
    ) -> dict[str, Any]:
        """Create a child page and embed it in this page's content."""
        child, parent = await page_service.create_subpage(
            db_session,
            page_id,
            data.title,
            actor_id=actor_id,
            display_mode=data.display_mode,
            position=data.position,
        )
        return {"page": serialize_page(child), "parent": serialize_page(parent)}

    @post("/{page_id:uuid}/blocks/subpage")
    async def add_subpage_block(
        self,
        db_session: AsyncSession,
        actor_id: UUID | None,
        page_id: UUID,
        data: SubPageBlockCreate,
    ) -> dict[str, Any]:
        page = await page_service.add_subpage_block(
            db_session,
            page_id,
            data.target_page_id,
            actor_id=actor_id,
            display_mode=data.display_mode,
            position=data.position,
        )
        return serialize_page(page)

    @delete("/{page_id:uuid}/blocks/{block_id:str}", status_code=200)
    async def remove_subpage_block(
        self,
        db_session: AsyncSession,
        actor_id: UUID | None,
        page_id: UUID,
        block_id: str,
    ) -> dict[str, Any]:
        page = await page_service.remove_subpage_block(db_session, page_id, block_id, actor_id=actor_id)
        return serialize_page(page)

    @put("/{page_id:uuid}/blocks/order")
    async def reorder_blocks(
        self,
        db_session: AsyncSession,
        actor_id: UUID | None,
        page_id: UUID,
        data: BlockReorder,
    ) -> dict[str, Any]:
        orders = [(item.block_id, item.order) for item in data.orders]
        page = await page_service.reorder_page_blocks(db_session, page_id, orders, actor_id=actor_id)
        return serialize_page(page)
