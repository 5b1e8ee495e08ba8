from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from app.api.errors import unwrap
from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import get_current_user_id
from app.core.rate_limit import share_password_rate_limiter, share_rate_limiter
from app.models.share_link import ShareLink
from app.schemas.share import (
    ShareDownloadRequest,
    ShareDownloadResponse,
    ShareInfoResponse,
    ShareLinkCreate,
    ShareLinkResponse,
)
from app.services.access_gate import access_gate
from app.services.share_service import share_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shares", tags=["Shares"])


def to_share_response(share_link: ShareLink) -> ShareLinkResponse:
    # The password hash never leaves the server
    return ShareLinkResponse(
        id=share_link.id,
        file_id=share_link.file_id,
        token=share_link.token,
        share_url=settings.share_url(share_link.token),
        has_password=share_link.has_password,
        expires_at=share_link.expires_at,
        download_count=share_link.download_count or 0,
        is_active=share_link.is_active,
        created_at=share_link.created_at
    )


@router.post("", response_model=ShareLinkResponse, status_code=status.HTTP_201_CREATED)
async def create_share_link(
    share_data: ShareLinkCreate,
    current_user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Create a share link for one of the current user's files."""
    unwrap(
        await access_gate.authorize_file(db, share_data.file_id, current_user_id),
        "File not found"
    )

    share_link = await share_service.create_share_link(
        db,
        file_id=share_data.file_id,
        password=share_data.password,
        expires_at=share_data.expires_at
    )
    return to_share_response(share_link)


@router.post("/{share_id}/revoke", response_model=ShareLinkResponse)
async def revoke_share_link(
    share_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Deactivate a share link while keeping its record."""
    share_link = unwrap(
        await access_gate.authorize_share_management(db, share_id, current_user_id),
        "Share link not found"
    )

    await share_service.revoke_share_link(db, share_id)
    await db.refresh(share_link)

    return to_share_response(share_link)


@router.delete("/{share_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_share_link(
    share_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Permanently delete a share link."""
    unwrap(
        await access_gate.authorize_share_management(db, share_id, current_user_id),
        "Share link not found"
    )

    await share_service.delete_share_link(db, share_id)

    return None


@router.get(
    "/info/{token}",
    response_model=ShareInfoResponse,
    dependencies=[Depends(share_rate_limiter)]
)
async def get_share_info(token: str, db: AsyncSession = Depends(get_db)):
    """Public share page metadata. No login required."""
    info = unwrap(await access_gate.get_share_info(db, token), "Share link not found")
    return ShareInfoResponse(**info.__dict__)


@router.post(
    "/{token}/download",
    response_model=ShareDownloadResponse,
    dependencies=[Depends(share_rate_limiter), Depends(share_password_rate_limiter)]
)
async def download_shared_file(
    token: str,
    download_request: Optional[ShareDownloadRequest] = None,
    db: AsyncSession = Depends(get_db)
):
    """
    Redeem a share token.

    Returns the blob URL to redirect to and counts the download. Expired links
    answer 410, missing or wrong passwords 401.
    """
    password = download_request.password if download_request else None

    download = unwrap(
        await access_gate.authorize_share_download(db, token, password),
        "Share link not found"
    )
    return ShareDownloadResponse(download_url=download.download_url, file_name=download.file_name)
