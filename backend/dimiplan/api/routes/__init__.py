"""API routes package."""

from dimiplan.api.routes import auth, chat, folders, planners, tasks

__all__ = [
    "auth",
    "chat",
    "folders",
    "planners",
    "tasks",
]
