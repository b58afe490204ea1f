"""Planner routes."""

from fastapi import APIRouter, status

from dimiplan.api.deps import AppServices, CurrentUserId, DbSession, found_or_404
from dimiplan.schemas.planners import PlannerCreate, PlannerRead, PlannerUpdate

router = APIRouter(prefix="/planners", tags=["planners"])


@router.get("/", response_model=list[PlannerRead])
async def list_planners(
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> list[PlannerRead]:
    """List all planners, regular ones before daily ones."""
    planners = await services.planners.get_planners(db, external_id)
    return [PlannerRead.model_validate(p) for p in planners]


@router.post("/", response_model=PlannerRead, status_code=status.HTTP_201_CREATED)
async def create_planner(
    data: PlannerCreate,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> PlannerRead:
    planner = await services.planners.create_planner(
        db, external_id, data.name, is_daily=data.is_daily, folder_id=data.folder_id
    )
    return PlannerRead.model_validate(planner)


@router.get("/{planner_id}", response_model=PlannerRead)
async def get_planner(
    planner_id: int,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> PlannerRead:
    planner = await services.planners.get_planner_by_id(db, external_id, planner_id)
    return PlannerRead.model_validate(found_or_404(planner, "Planner not found"))


@router.patch("/{planner_id}", response_model=PlannerRead)
async def update_planner(
    planner_id: int,
    data: PlannerUpdate,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> PlannerRead:
    """Rename and/or move a planner to another folder."""
    planner = None
    if data.name is not None:
        planner = await services.planners.rename_planner(db, external_id, planner_id, data.name)
    if data.folder_id is not None:
        planner = await services.planners.move_planner(db, external_id, planner_id, data.folder_id)
    if planner is None:
        planner = await services.planners.get_planner_by_id(db, external_id, planner_id)
    return PlannerRead.model_validate(found_or_404(planner, "Planner not found"))


@router.delete("/{planner_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_planner(
    planner_id: int,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> None:
    """Delete a planner and its tasks."""
    await services.planners.delete_planner(db, external_id, planner_id)
