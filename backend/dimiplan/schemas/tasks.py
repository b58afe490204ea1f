"""Task (plan) schemas."""

from datetime import date

from pydantic import Field, field_serializer

from dimiplan.schemas.base import BaseSchema, IDMixin, TimestampMixin


class TaskCreate(BaseSchema):
    contents: str = Field(..., min_length=1)
    planner_id: int
    start_date: date | None = None
    due_date: date | None = None
    priority: int = Field(1, ge=0)


class TaskRead(IDMixin, TimestampMixin, BaseSchema):
    planner_id: int
    contents: str | None
    priority: int
    is_completed: int
    start_date: date | None = None
    due_date: date | None = None

    @field_serializer("is_completed")
    def serialize_is_completed(self, value: int) -> bool:
        return bool(value)


class TaskUpdate(BaseSchema):
    """Schema for updating a task. All fields optional."""

    contents: str | None = Field(None, min_length=1)
    planner_id: int | None = None
    start_date: date | None = None
    due_date: date | None = None
    priority: int | None = Field(None, ge=0)
    is_completed: bool | None = None
