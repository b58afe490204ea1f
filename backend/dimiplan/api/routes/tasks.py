"""Task routes."""

from fastapi import APIRouter, status

from dimiplan.api.deps import AppServices, CurrentUserId, DbSession, found_or_404
from dimiplan.schemas.tasks import TaskCreate, TaskRead, TaskUpdate

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("/", response_model=list[TaskRead])
async def list_tasks(
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
    planner_id: int | None = None,
    is_completed: bool | None = None,
) -> list[TaskRead]:
    """List tasks, open ones first, then by priority (highest first)."""
    tasks = await services.tasks.get_tasks(
        db, external_id, planner_id=planner_id, is_completed=is_completed
    )
    return [TaskRead.model_validate(t) for t in tasks]


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> TaskRead:
    task = await services.tasks.create_task(
        db,
        external_id,
        data.contents,
        data.planner_id,
        start_date=data.start_date,
        due_date=data.due_date,
        priority=data.priority,
    )
    return TaskRead.model_validate(task)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: int,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> TaskRead:
    task = await services.tasks.get_task_by_id(db, external_id, task_id)
    return TaskRead.model_validate(found_or_404(task, "Task not found"))


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: int,
    data: TaskUpdate,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> TaskRead:
    task = await services.tasks.update_task(db, external_id, task_id, data.model_dump(exclude_unset=True))
    return TaskRead.model_validate(task)


@router.post("/{task_id}/complete", response_model=TaskRead)
async def complete_task(
    task_id: int,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> TaskRead:
    task = await services.tasks.complete_task(db, external_id, task_id)
    return TaskRead.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> None:
    await services.tasks.delete_task(db, external_id, task_id)
