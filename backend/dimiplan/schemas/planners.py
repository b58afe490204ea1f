"""Planner schemas."""

from pydantic import Field, field_serializer

from dimiplan.schemas.base import BaseSchema, IDMixin, TimestampMixin


class PlannerCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    is_daily: bool = False
    folder_id: int = 0


class PlannerRead(IDMixin, TimestampMixin, BaseSchema):
    folder_id: int
    is_daily: int
    name: str | None

    @field_serializer("is_daily")
    def serialize_is_daily(self, value: int) -> bool:
        return bool(value)


class PlannerUpdate(BaseSchema):
    """Rename and/or move a planner."""

    name: str | None = Field(None, min_length=1, max_length=255)
    folder_id: int | None = None
