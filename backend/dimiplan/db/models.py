"""
SQLAlchemy 2.0 Models for Dimiplan.

Uses modern declarative syntax with Mapped[] type annotations.

Every user-owned table is keyed by (owner, id) where owner is the 64-hex
SHA3-256 row key of the external identifier and id comes from the user's
counter row. Column names follow the MySQL layout (camelCase, `from` for the
parent reference); attributes are snake_case.

Each model declares which attribute holds the owner and which attributes are
stored encrypted; the record envelope reads these declarations.
"""

from datetime import date, datetime
from enum import Enum as PyEnum
from typing import ClassVar, Optional

from sqlalchemy import CHAR, BigInteger, DateTime, Index, Integer, SmallInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dimiplan.db.base import Base

OWNER_TYPE = CHAR(64)
# 255 characters of UTF-8, hex encoded and padded to the block size
ENCRYPTED_NAME_TYPE = String(2048)


# =============================================================================
# ENUMS
# =============================================================================


class ChatSender(str, PyEnum):
    """Author of a chat message."""

    USER = "user"
    AI = "ai"


# =============================================================================
# MODELS
# =============================================================================


class EncryptedModel(Base):
    """Abstract base carrying the envelope declaration."""

    __abstract__ = True

    __owner_field__: ClassVar[str] = "owner"
    __encrypted_fields__: ClassVar[tuple[str, ...]] = ()


class User(EncryptedModel):
    """
    User account.

    The primary key is the opaque row key; the external OAuth identifier is never
    stored. Profile fields are encrypted under the user's derived key.
    """

    __tablename__ = "users"
    __owner_field__ = "id"
    __encrypted_fields__ = ("name", "email", "profile_image")

    id: Mapped[str] = mapped_column(OWNER_TYPE, primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(ENCRYPTED_NAME_TYPE, nullable=True)
    grade: Mapped[Optional[int]] = mapped_column(SmallInteger, nullable=True)
    class_: Mapped[Optional[int]] = mapped_column("class", SmallInteger, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(ENCRYPTED_NAME_TYPE, nullable=True)
    profile_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class UserCounter(EncryptedModel):
    """Per-user id allocator (one row per user, created with the user)."""

    __tablename__ = "userid"

    owner: Mapped[str] = mapped_column(OWNER_TYPE, primary_key=True)
    planner_id: Mapped[int] = mapped_column("plannerId", BigInteger, nullable=False, default=1)
    plan_id: Mapped[int] = mapped_column("planId", BigInteger, nullable=False, default=1)
    room_id: Mapped[int] = mapped_column("roomId", BigInteger, nullable=False, default=1)
    chat_id: Mapped[int] = mapped_column("chatId", BigInteger, nullable=False, default=1)
    folder_id: Mapped[int] = mapped_column("folderId", BigInteger, nullable=False, default=1)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class Folder(EncryptedModel):
    """Folder tree node. The root folder has id 0 and parent -1."""

    __tablename__ = "folders"
    __encrypted_fields__ = ("name",)
    __table_args__ = (Index("idx_folders_owner_parent", "owner", "from"),)

    owner: Mapped[str] = mapped_column(OWNER_TYPE, primary_key=True)
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    parent_id: Mapped[int] = mapped_column("from", BigInteger, nullable=False, default=-1)
    name: Mapped[Optional[str]] = mapped_column(ENCRYPTED_NAME_TYPE, nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class Planner(EncryptedModel):
    """Named list of plans, filed under a folder."""

    __tablename__ = "planner"
    __encrypted_fields__ = ("name",)
    __table_args__ = (Index("idx_planner_owner_folder", "owner", "from"),)

    owner: Mapped[str] = mapped_column(OWNER_TYPE, primary_key=True)
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    folder_id: Mapped[int] = mapped_column("from", BigInteger, nullable=False, default=0)
    is_daily: Mapped[int] = mapped_column("isDaily", SmallInteger, nullable=False, default=0)
    name: Mapped[Optional[str]] = mapped_column(ENCRYPTED_NAME_TYPE, nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class Plan(EncryptedModel):
    """A task inside a planner."""

    __tablename__ = "plan"
    __encrypted_fields__ = ("contents",)
    __table_args__ = (Index("idx_plan_owner_planner", "owner", "from"),)

    owner: Mapped[str] = mapped_column(OWNER_TYPE, primary_key=True)
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    planner_id: Mapped[int] = mapped_column("from", BigInteger, nullable=False, default=0)
    contents: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_completed: Mapped[int] = mapped_column("isCompleted", SmallInteger, nullable=False, default=0)
    start_date: Mapped[Optional[date]] = mapped_column("startDate", nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column("dueDate", nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class ChatRoom(EncryptedModel):
    """Chat room holding a conversation with the assistant."""

    __tablename__ = "chat_rooms"
    __encrypted_fields__ = ("name",)

    owner: Mapped[str] = mapped_column(OWNER_TYPE, primary_key=True)
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    name: Mapped[Optional[str]] = mapped_column(ENCRYPTED_NAME_TYPE, nullable=True)
    is_processing: Mapped[int] = mapped_column("isProcessing", SmallInteger, nullable=False, default=0)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class ChatMessage(EncryptedModel):
    """Single message in a chat room; user and ai replies are minted as id pairs."""

    __tablename__ = "chat"
    __encrypted_fields__ = ("message",)
    __table_args__ = (Index("idx_chat_owner_room", "owner", "from"),)

    owner: Mapped[str] = mapped_column(OWNER_TYPE, primary_key=True)
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    room_id: Mapped[int] = mapped_column("from", BigInteger, nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sender: Mapped[str] = mapped_column(String(8), nullable=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
