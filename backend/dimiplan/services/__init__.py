"""Data access services over the encrypted tables."""

from dataclasses import dataclass
from functools import lru_cache

from dimiplan.crypto import get_envelope
from dimiplan.crypto.envelope import RecordEnvelope
from dimiplan.services.chat import ChatService
from dimiplan.services.counters import CounterService
from dimiplan.services.folders import FolderService
from dimiplan.services.planners import PlannerService
from dimiplan.services.tasks import TaskService
from dimiplan.services.users import UserService


@dataclass(frozen=True)
class Services:
    counters: CounterService
    users: UserService
    folders: FolderService
    planners: PlannerService
    tasks: TaskService
    chat: ChatService


def build_services(envelope: RecordEnvelope) -> Services:
    counters = CounterService()
    folders = FolderService(envelope, counters)
    planners = PlannerService(envelope, counters, folders)
    return Services(
        counters=counters,
        users=UserService(envelope, counters, folders),
        folders=folders,
        planners=planners,
        tasks=TaskService(envelope, counters, planners),
        chat=ChatService(envelope, counters),
    )


@lru_cache
def get_services() -> Services:
    return build_services(get_envelope())


__all__ = [
    "ChatService",
    "CounterService",
    "FolderService",
    "PlannerService",
    "Services",
    "TaskService",
    "UserService",
    "build_services",
    "get_services",
]
