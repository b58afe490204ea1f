"""Pydantic schemas for API request/response validation."""

from dimiplan.schemas.auth import GoogleAuthRequest, TokenResponse
from dimiplan.schemas.chat import (
    ChatExchangeCreate,
    ChatMessageRead,
    ChatRoomCreate,
    ChatRoomRead,
    ChatRoomRename,
)
from dimiplan.schemas.folders import FolderCreate, FolderDeleteResult, FolderRead, FolderRename
from dimiplan.schemas.planners import PlannerCreate, PlannerRead, PlannerUpdate
from dimiplan.schemas.tasks import TaskCreate, TaskRead, TaskUpdate
from dimiplan.schemas.users import UserRead, UserUpdate

__all__ = [
    # Auth
    "GoogleAuthRequest",
    "TokenResponse",
    # Users
    "UserRead",
    "UserUpdate",
    # Folders
    "FolderCreate",
    "FolderDeleteResult",
    "FolderRead",
    "FolderRename",
    # Planners
    "PlannerCreate",
    "PlannerRead",
    "PlannerUpdate",
    # Tasks
    "TaskCreate",
    "TaskRead",
    "TaskUpdate",
    # Chat
    "ChatExchangeCreate",
    "ChatMessageRead",
    "ChatRoomCreate",
    "ChatRoomRead",
    "ChatRoomRename",
]
