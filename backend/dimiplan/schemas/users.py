"""User schemas."""

from pydantic import Field

from dimiplan.schemas.base import BaseSchema, TimestampMixin


class UserRead(TimestampMixin, BaseSchema):
    """Decrypted profile. `id` is the external identifier, never the row key."""

    id: str
    name: str | None = None
    email: str | None = None
    profile_image: str | None = None
    grade: int | None = None
    class_: int | None = Field(None, serialization_alias="class")


class UserUpdate(BaseSchema):
    """Schema for updating the profile. All fields optional."""

    name: str | None = Field(None, min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255)
    profile_image: str | None = None
    grade: int | None = Field(None, ge=1, le=3)
    class_: int | None = Field(None, ge=1, le=6, validation_alias="class")
