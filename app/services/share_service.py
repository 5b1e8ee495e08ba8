"""
Share link lifecycle: issue, resolve, check, count downloads, revoke, delete.

Expiration is evaluated when a link is read; nothing sweeps expired links.
"""

from dataclasses import dataclass
from datetime import datetime
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import enum
import logging

from app.core.security import hash_password_async, verify_password_async
from app.core.tokens import generate_share_token
from app.models.base import as_utc, utcnow
from app.models.share_link import ShareLink

logger = logging.getLogger(__name__)


class DenyReason(str, enum.Enum):
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    PASSWORD_REQUIRED = "password_required"
    PASSWORD_INCORRECT = "password_incorrect"
    FORBIDDEN = "forbidden"


@dataclass
class AccessDecision:
    denial: Optional[DenyReason] = None

    @property
    def allowed(self) -> bool:
        return self.denial is None


class ShareService:
    async def create_share_link(
        self,
        db: AsyncSession,
        file_id: str,
        password: Optional[str] = None,
        expires_at: Optional[datetime] = None
    ) -> ShareLink:
        """
        Issue a new share link for a file.

        The caller has already checked that the actor owns the file.
        `expires_at` is stored as an absolute UTC timestamp.
        """
        password_hash = await hash_password_async(password) if password else None

        share_link = ShareLink(
            file_id=file_id,
            token=generate_share_token(),
            password_hash=password_hash,
            expires_at=as_utc(expires_at),
            download_count=0,
            is_active=True
        )
        db.add(share_link)
        await db.commit()
        await db.refresh(share_link)

        logger.info(
            f"Created share link {share_link.id} for file {file_id} "
            f"(password: {password_hash is not None}, expires_at: {share_link.expires_at})"
        )
        return share_link

    async def get_share_link(self, db: AsyncSession, share_link_id: str) -> Optional[ShareLink]:
        return await db.get(ShareLink, share_link_id)

    async def list_share_links(self, db: AsyncSession, file_id: str) -> List[ShareLink]:
        """Active share links of a file, newest first."""
        result = await db.execute(
            select(ShareLink)
            .where(ShareLink.file_id == file_id, ShareLink.is_active.is_(True))
            .order_by(ShareLink.created_at.desc())
        )
        return list(result.scalars().all())

    async def resolve_by_token(self, db: AsyncSession, token: str) -> Optional[ShareLink]:
        """Look up an active share link by its exact token."""
        if not token:
            return None

        share_link = await db.scalar(select(ShareLink).where(ShareLink.token == token))
        if share_link is None or not share_link.is_active:
            return None
        return share_link

    def is_expired(self, share_link: ShareLink, now: Optional[datetime] = None) -> bool:
        expires_at = as_utc(share_link.expires_at)
        if expires_at is None:
            return False
        return expires_at < (as_utc(now) or utcnow())

    async def check_access(
        self,
        share_link: Optional[ShareLink],
        password: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> AccessDecision:
        """
        Decide whether a download may proceed.

        Checks run in a fixed order so an expired link never reveals that it
        is password protected.
        """
        if share_link is None or not share_link.is_active:
            return AccessDecision(DenyReason.NOT_FOUND)

        if self.is_expired(share_link, now):
            return AccessDecision(DenyReason.EXPIRED)

        if share_link.password_hash:
            if not password:
                return AccessDecision(DenyReason.PASSWORD_REQUIRED)
            if not await verify_password_async(password, share_link.password_hash):
                return AccessDecision(DenyReason.PASSWORD_INCORRECT)

        return AccessDecision()

    async def record_download(self, db: AsyncSession, share_link_id: str) -> bool:
        """
        Increment the download counter in a single UPDATE statement.

        Returns False when the link was revoked or deleted in the meantime.
        """
        result = await db.execute(
            update(ShareLink)
            .where(ShareLink.id == share_link_id, ShareLink.is_active.is_(True))
            .values(download_count=ShareLink.download_count + 1)
            .execution_options(synchronize_session=False)
        )
        counted = result.rowcount > 0
        await db.commit()
        return counted

    async def revoke_share_link(self, db: AsyncSession, share_link_id: str) -> bool:
        """Deactivate a link without deleting it. Returns False if it does not exist."""
        result = await db.execute(
            update(ShareLink)
            .where(ShareLink.id == share_link_id)
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        revoked = result.rowcount > 0
        if revoked:
            logger.info(f"Revoked share link {share_link_id}")
        return revoked

    async def delete_share_link(self, db: AsyncSession, share_link_id: str) -> None:
        """Hard-delete a share link. Deleting an absent link is a no-op."""
        result = await db.execute(
            delete(ShareLink)
            .where(ShareLink.id == share_link_id)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        if result.rowcount:
            logger.info(f"Deleted share link {share_link_id}")


# Singleton instance
share_service = ShareService()
