from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from app.api.errors import unwrap
from app.api.routes.shares import to_share_response
from app.core.database import get_db
from app.core.dependencies import get_current_user_id
from app.core.exceptions import ValidationFailed
from app.schemas.file import FileCreate, FileResponse, StorageStats
from app.schemas.share import ShareLinkResponse
from app.services.access_gate import access_gate
from app.services.azure_blob import blob_service
from app.services.folder_service import folder_service
from app.services.share_service import share_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])


@router.get("/files", response_model=List[FileResponse])
async def list_files(
    folder_id: Optional[str] = None,
    current_user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """List the files directly inside a folder, or at the root."""
    if folder_id is not None:
        unwrap(
            await access_gate.authorize_folder(db, folder_id, current_user_id),
            "Folder not found"
        )

    return await folder_service.list_files(db, current_user_id, folder_id)


@router.post("/files", response_model=FileResponse, status_code=status.HTTP_201_CREATED)
async def create_file(
    file_data: FileCreate,
    current_user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a file whose content was uploaded directly to blob storage.

    The object path is normalized to the bare blob name before it is stored.
    """
    try:
        object_path = blob_service.normalize_object_path(file_data.object_path)

        return await folder_service.create_file(
            db,
            name=file_data.name,
            size_bytes=file_data.size_bytes,
            mime_type=file_data.mime_type,
            object_path=object_path,
            folder_id=file_data.folder_id or None,
            owner_id=current_user_id
        )
    except ValidationFailed as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.delete("/files/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    file_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Delete a file and every share link pointing at it."""
    unwrap(
        await access_gate.authorize_file(db, file_id, current_user_id),
        "File not found"
    )

    await folder_service.delete_file(db, file_id, current_user_id)

    return None


@router.get("/files/{file_id}/shares", response_model=List[ShareLinkResponse])
async def list_file_shares(
    file_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """List the active share links of a file."""
    unwrap(
        await access_gate.authorize_file(db, file_id, current_user_id),
        "File not found"
    )

    share_links = await share_service.list_share_links(db, file_id)
    return [to_share_response(share_link) for share_link in share_links]


@router.get("/stats", response_model=StorageStats)
async def get_stats(
    current_user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Totals for the current user's drive."""
    return await folder_service.get_stats(db, current_user_id)
