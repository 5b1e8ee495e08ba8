"""
Access control gate.

This is the one place that establishes whether an actor may touch a folder,
file or share link. The storage services below it trust whatever owner_id
they are handed; the gate makes sure that id is the actor's own. Outcomes are
returned as values (`GateResult`) rather than raised.
"""

from dataclasses import dataclass
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Generic, Optional, TypeVar
import logging

from app.models.file import File
from app.models.folder import Folder
from app.models.share_link import ShareLink
from app.services.azure_blob import blob_service
from app.services.folder_service import folder_service
from app.services.share_service import DenyReason, share_service

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class GateResult(Generic[T]):
    value: Optional[T] = None
    denial: Optional[DenyReason] = None

    @property
    def allowed(self) -> bool:
        return self.denial is None

    @classmethod
    def allow(cls, value: T) -> "GateResult[T]":
        return cls(value=value)

    @classmethod
    def deny(cls, reason: DenyReason) -> "GateResult[T]":
        return cls(denial=reason)


@dataclass
class ShareInfo:
    id: str
    file_name: str
    file_size: int
    mime_type: str
    has_password: bool
    expires_at: Any
    is_expired: bool
    download_count: int


@dataclass
class ShareDownload:
    download_url: str
    file_name: str


def is_owner(entity: Any, actor_id: Optional[str]) -> bool:
    """True when `actor_id` owns the folder or file."""
    return actor_id is not None and entity is not None and entity.owner_id == actor_id


class AccessGate:
    async def authorize_folder(
        self,
        db: AsyncSession,
        folder_id: str,
        actor_id: str
    ) -> GateResult[Folder]:
        folder = await folder_service.get_folder(db, folder_id)
        if folder is None:
            return GateResult.deny(DenyReason.NOT_FOUND)
        if not is_owner(folder, actor_id):
            logger.warning(f"User {actor_id} denied access to folder {folder_id}")
            return GateResult.deny(DenyReason.FORBIDDEN)
        return GateResult.allow(folder)

    async def authorize_file(
        self,
        db: AsyncSession,
        file_id: str,
        actor_id: str
    ) -> GateResult[File]:
        file = await folder_service.get_file(db, file_id)
        if file is None:
            return GateResult.deny(DenyReason.NOT_FOUND)
        if not is_owner(file, actor_id):
            logger.warning(f"User {actor_id} denied access to file {file_id}")
            return GateResult.deny(DenyReason.FORBIDDEN)
        return GateResult.allow(file)

    async def authorize_share_management(
        self,
        db: AsyncSession,
        share_link_id: str,
        actor_id: str
    ) -> GateResult[ShareLink]:
        """A share link is managed by whoever owns its file."""
        share_link = await share_service.get_share_link(db, share_link_id)
        if share_link is None:
            return GateResult.deny(DenyReason.NOT_FOUND)

        file = await folder_service.get_file(db, share_link.file_id)
        if not is_owner(file, actor_id):
            logger.warning(f"User {actor_id} denied access to share link {share_link_id}")
            return GateResult.deny(DenyReason.FORBIDDEN)

        return GateResult.allow(share_link)

    async def get_share_info(self, db: AsyncSession, token: str) -> GateResult[ShareInfo]:
        """Public metadata for a share page. Needs only the token."""
        share_link = await share_service.resolve_by_token(db, token)
        if share_link is None:
            return GateResult.deny(DenyReason.NOT_FOUND)

        file = await folder_service.get_file(db, share_link.file_id)
        if file is None:
            return GateResult.deny(DenyReason.NOT_FOUND)

        return GateResult.allow(ShareInfo(
            id=share_link.id,
            file_name=file.name,
            file_size=file.size_bytes,
            mime_type=file.mime_type,
            has_password=share_link.has_password,
            expires_at=share_link.expires_at,
            is_expired=share_service.is_expired(share_link),
            download_count=share_link.download_count or 0
        ))

    async def authorize_share_download(
        self,
        db: AsyncSession,
        token: str,
        password: Optional[str] = None
    ) -> GateResult[ShareDownload]:
        """
        Redeem a share token for a download.

        On success the download is counted and the redirect target for the
        file's blob is returned.
        """
        share_link = await share_service.resolve_by_token(db, token)

        decision = await share_service.check_access(share_link, password)
        if not decision.allowed:
            return GateResult.deny(decision.denial)

        file = await folder_service.get_file(db, share_link.file_id)
        if file is None:
            return GateResult.deny(DenyReason.NOT_FOUND)

        if not await share_service.record_download(db, share_link.id):
            logger.info(f"Share link {share_link.id} went away before the download was counted")
            return GateResult.deny(DenyReason.NOT_FOUND)

        logger.info(f"Share link {share_link.id} redeemed for file {file.id}")

        return GateResult.allow(ShareDownload(
            download_url=blob_service.build_download_url(file.object_path, file.name),
            file_name=file.name
        ))


# Singleton instance
access_gate = AccessGate()
