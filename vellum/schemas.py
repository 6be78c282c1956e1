"""Request bodies accepted by the JSON API."""

from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

DisplayMode = Literal["inline", "embedded", "link"]


class ProjectCreate(BaseModel):
    name: str
    slug: str | None = None
    description: str | None = None
    is_public: bool = True


class PageCreate(BaseModel):
    title: str
    parent_page_id: UUID | None = None
    slug: str | None = None
    content: dict[str, Any] | None = None
    description: str | None = None
    icon: str | None = None
    is_published: bool = False
    order_index: int | None = None


class PageUpdate(BaseModel):
    """Only the fields present in the request body are changed."""

    title: str | None = None
    slug: str | None = None
    content: dict[str, Any] | None = None
    description: str | None = None
    icon: str | None = None
    is_published: bool | None = None
    order_index: int | None = None

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class PageMove(BaseModel):
    new_parent_id: UUID | None = None
    new_order_index: int = Field(default=0, ge=0)


class PageDuplicate(BaseModel):
    new_title: str | None = None
    new_parent_id: UUID | None = None
    include_children: bool = False


class SubPageBlockCreate(BaseModel):
    target_page_id: UUID
    display_mode: DisplayMode = "link"
    position: int | None = Field(default=None, ge=0)


class SubPageCreate(BaseModel):
    title: str
    display_mode: DisplayMode = "link"
    position: int | None = Field(default=None, ge=0)


class BlockOrder(BaseModel):
    block_id: str
    order: int


class BlockReorder(BaseModel):
    orders: list[BlockOrder]


class VersionCreate(BaseModel):
    # Suggested from the highest existing number when omitted
    version_number: str | None = None
    bump: Literal["major", "minor", "patch"] | None = None
    version_name: str | None = None
    release_notes: str | None = None


class VersionUpdate(BaseModel):
    version_name: str | None = None
    release_notes: str | None = None

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}
