"""Folder routes."""

from fastapi import APIRouter, status

from dimiplan.api.deps import AppServices, CurrentUserId, DbSession, found_or_404
from dimiplan.schemas.folders import FolderCreate, FolderDeleteResult, FolderRead, FolderRename
from dimiplan.schemas.planners import PlannerRead
from dimiplan.services.folders import ROOT_FOLDER_ID

router = APIRouter(prefix="/folders", tags=["folders"])


@router.get("/", response_model=list[FolderRead])
async def list_folders(
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
    parent_id: int = ROOT_FOLDER_ID,
) -> list[FolderRead]:
    """List the direct subfolders of a folder (the root by default)."""
    folders = await services.folders.list_subfolders(db, external_id, parent_id)
    return [FolderRead.model_validate(f) for f in folders]


@router.post("/", response_model=FolderRead, status_code=status.HTTP_201_CREATED)
async def create_folder(
    data: FolderCreate,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> FolderRead:
    folder = await services.folders.create_folder(db, external_id, data.name, data.parent_id)
    return FolderRead.model_validate(folder)


@router.get("/{folder_id}", response_model=FolderRead)
async def get_folder(
    folder_id: int,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> FolderRead:
    folder = await services.folders.get_folder_by_id(db, external_id, folder_id)
    return FolderRead.model_validate(found_or_404(folder, "Folder not found"))


@router.get("/{folder_id}/planners", response_model=list[PlannerRead])
async def list_folder_planners(
    folder_id: int,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> list[PlannerRead]:
    found_or_404(await services.folders.get_folder_by_id(db, external_id, folder_id), "Folder not found")
    planners = await services.planners.get_planners_in_folder(db, external_id, folder_id)
    return [PlannerRead.model_validate(p) for p in planners]


@router.patch("/{folder_id}", response_model=FolderRead)
async def rename_folder(
    folder_id: int,
    data: FolderRename,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> FolderRead:
    folder = await services.folders.rename_folder(db, external_id, folder_id, data.name)
    return FolderRead.model_validate(folder)


@router.delete("/{folder_id}", response_model=FolderDeleteResult)
async def delete_folder(
    folder_id: int,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> FolderDeleteResult:
    """Delete a folder with its subfolders, their planners and tasks."""
    counts = await services.folders.delete_folder(db, external_id, folder_id)
    return FolderDeleteResult(**counts)
