"""Folder schemas."""

from pydantic import Field

from dimiplan.schemas.base import BaseSchema, IDMixin, TimestampMixin


class FolderCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    parent_id: int = Field(0, description="Parent folder id (0 is the root folder)")


class FolderRead(IDMixin, TimestampMixin, BaseSchema):
    parent_id: int
    name: str | None


class FolderRename(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)


class FolderDeleteResult(BaseSchema):
    """Rows removed by a recursive folder delete."""

    folders: int
    planners: int
    plans: int
