"""Base schema configuration."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        populate_by_name=True,
    )


class TimestampMixin(BaseModel):
    """
    created_at/updated_at timestamps.

    Optional because rows written before the timestamp columns existed carry NULL.
    """

    created_at: datetime | None = None
    updated_at: datetime | None = None


class IDMixin(BaseModel):
    """Per-user integer id minted by the counter row."""

    id: int
