from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from app.api.errors import unwrap
from app.core.database import get_db
from app.core.dependencies import get_current_user_id
from app.core.exceptions import ValidationFailed
from app.schemas.folder import FolderCreate, FolderResponse
from app.services.access_gate import access_gate
from app.services.folder_service import folder_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/folders", tags=["Folders"])


@router.get("", response_model=List[FolderResponse])
async def list_folders(
    parent_id: Optional[str] = None,
    current_user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """List the folders directly under `parent_id`, or the root folders."""
    if parent_id is not None:
        unwrap(
            await access_gate.authorize_folder(db, parent_id, current_user_id),
            "Folder not found"
        )

    return await folder_service.list_folders(db, current_user_id, parent_id)


@router.get("/path/{folder_id}", response_model=List[FolderResponse])
async def get_folder_path(
    folder_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Breadcrumb from the root down to a folder."""
    unwrap(
        await access_gate.authorize_folder(db, folder_id, current_user_id),
        "Folder not found"
    )
    return await folder_service.get_path(db, folder_id)


@router.post("", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    folder_data: FolderCreate,
    current_user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Create a folder for the current user."""
    name = folder_data.name.strip()
    if not name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Folder name is required"
        )

    try:
        return await folder_service.create_folder(
            db,
            name=name,
            parent_id=folder_data.parent_id or None,
            owner_id=current_user_id
        )
    except ValidationFailed as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.delete("/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_folder(
    folder_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Delete a folder with all its subfolders, files and share links."""
    unwrap(
        await access_gate.authorize_folder(db, folder_id, current_user_id),
        "Folder not found"
    )

    await folder_service.delete_folder(db, folder_id, current_user_id)

    return None
