"""
Folder and file metadata storage.

The methods here trust the owner_id they are given: callers establish that it
is the acting user's id through the access gate before calling a mutating or
path-revealing method.
"""

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List, Optional
import logging

from app.core.exceptions import InvalidParentFolder
from app.models.file import File
from app.models.folder import Folder
from app.models.share_link import ShareLink

logger = logging.getLogger(__name__)


class FolderService:
    # ---------- Folders ----------

    async def create_folder(
        self,
        db: AsyncSession,
        name: str,
        parent_id: Optional[str],
        owner_id: str
    ) -> Folder:
        """
        Create a folder under `parent_id` (or at the owner's root).

        Sibling folders may share a name. The parent must exist and belong to
        the same owner; a new folder is always a leaf, so no cycle can form.
        """
        if parent_id is not None:
            parent = await db.get(Folder, parent_id)
            if parent is None or parent.owner_id != owner_id:
                raise InvalidParentFolder(f"Parent folder {parent_id} is not available")

        folder = Folder(name=name, parent_id=parent_id, owner_id=owner_id)
        db.add(folder)
        await db.commit()
        await db.refresh(folder)

        logger.info(f"Created folder {folder.id} (parent: {parent_id}, owner: {owner_id})")
        return folder

    async def get_folder(self, db: AsyncSession, folder_id: str) -> Optional[Folder]:
        return await db.get(Folder, folder_id)

    async def list_folders(
        self,
        db: AsyncSession,
        owner_id: str,
        parent_id: Optional[str] = None
    ) -> List[Folder]:
        query = select(Folder).where(Folder.owner_id == owner_id)
        if parent_id is None:
            query = query.where(Folder.parent_id.is_(None))
        else:
            query = query.where(Folder.parent_id == parent_id)

        result = await db.execute(query.order_by(Folder.created_at, Folder.name))
        return list(result.scalars().all())

    async def get_path(self, db: AsyncSession, folder_id: str) -> List[Folder]:
        """
        Return the folders from the root down to `folder_id`.

        The walk stops at a folder without a parent or at a dangling parent
        reference. An unknown `folder_id` yields an empty list.
        """
        path: List[Folder] = []
        seen = set()
        current_id: Optional[str] = folder_id

        while current_id:
            if current_id in seen:
                logger.error(f"Folder cycle detected at {current_id} while resolving path of {folder_id}")
                break
            seen.add(current_id)

            folder = await db.get(Folder, current_id)
            if folder is None:
                break
            path.append(folder)
            current_id = folder.parent_id

        path.reverse()
        return path

    async def _collect_subtree(self, db: AsyncSession, folder_id: str, owner_id: str) -> List[str]:
        """Folder ids of the subtree rooted at `folder_id`, parents before children."""
        subtree = [folder_id]
        seen = {folder_id}
        pending = [folder_id]

        while pending:
            current_id = pending.pop()
            result = await db.execute(
                select(Folder.id).where(
                    Folder.parent_id == current_id,
                    Folder.owner_id == owner_id
                )
            )
            for child_id in result.scalars().all():
                if child_id in seen:
                    continue
                seen.add(child_id)
                subtree.append(child_id)
                pending.append(child_id)

        return subtree

    async def delete_folder(self, db: AsyncSession, folder_id: str, owner_id: str) -> None:
        """
        Delete a folder, every descendant folder, the files inside them and
        the share links of those files.

        Runs as one transaction: either the whole subtree is gone or nothing
        changed. A folder that does not exist or is owned by someone else is
        left untouched.
        """
        try:
            root_id = await db.scalar(
                select(Folder.id).where(Folder.id == folder_id, Folder.owner_id == owner_id)
            )
            if root_id is None:
                logger.info(f"Folder {folder_id} not found for owner {owner_id}, nothing to delete")
                return

            subtree = await self._collect_subtree(db, folder_id, owner_id)

            file_result = await db.execute(
                select(File.id).where(File.folder_id.in_(subtree), File.owner_id == owner_id)
            )
            file_ids = list(file_result.scalars().all())

            if file_ids:
                await db.execute(
                    delete(ShareLink)
                    .where(ShareLink.file_id.in_(file_ids))
                    .execution_options(synchronize_session=False)
                )
                await db.execute(
                    delete(File)
                    .where(File.id.in_(file_ids))
                    .execution_options(synchronize_session=False)
                )

            # Deepest folders first
            for current_id in reversed(subtree):
                await db.execute(
                    delete(Folder)
                    .where(Folder.id == current_id, Folder.owner_id == owner_id)
                    .execution_options(synchronize_session=False)
                )

            await db.commit()

            logger.info(
                f"Deleted folder {folder_id} with {len(subtree) - 1} descendant folders "
                f"and {len(file_ids)} files"
            )

        except Exception as e:
            await db.rollback()
            logger.warning(f"Rolled back deletion of folder {folder_id}: {str(e)}")
            raise

    # ---------- Files ----------

    async def create_file(
        self,
        db: AsyncSession,
        name: str,
        size_bytes: int,
        mime_type: str,
        object_path: str,
        folder_id: Optional[str],
        owner_id: str
    ) -> File:
        if folder_id is not None:
            folder = await db.get(Folder, folder_id)
            if folder is None or folder.owner_id != owner_id:
                raise InvalidParentFolder(f"Folder {folder_id} is not available")

        new_file = File(
            name=name,
            size_bytes=size_bytes,
            mime_type=mime_type,
            object_path=object_path,
            folder_id=folder_id,
            owner_id=owner_id
        )
        db.add(new_file)
        await db.commit()
        await db.refresh(new_file)

        logger.info(f"Registered file {new_file.id} ({size_bytes} bytes) for owner {owner_id}")
        return new_file

    async def get_file(self, db: AsyncSession, file_id: str) -> Optional[File]:
        return await db.get(File, file_id)

    async def list_files(
        self,
        db: AsyncSession,
        owner_id: str,
        folder_id: Optional[str] = None
    ) -> List[File]:
        query = select(File).where(File.owner_id == owner_id)
        if folder_id is None:
            query = query.where(File.folder_id.is_(None))
        else:
            query = query.where(File.folder_id == folder_id)

        result = await db.execute(query.order_by(File.created_at.desc(), File.name))
        return list(result.scalars().all())

    async def delete_file(self, db: AsyncSession, file_id: str, owner_id: str) -> None:
        """Delete a file and its share links in one transaction."""
        try:
            owned = await db.scalar(
                select(File.id).where(File.id == file_id, File.owner_id == owner_id)
            )
            if owned is None:
                logger.info(f"File {file_id} not found for owner {owner_id}, nothing to delete")
                return

            await db.execute(
                delete(ShareLink)
                .where(ShareLink.file_id == file_id)
                .execution_options(synchronize_session=False)
            )
            await db.execute(
                delete(File)
                .where(File.id == file_id, File.owner_id == owner_id)
                .execution_options(synchronize_session=False)
            )
            await db.commit()

            logger.info(f"Deleted file {file_id}")

        except Exception as e:
            await db.rollback()
            logger.warning(f"Rolled back deletion of file {file_id}: {str(e)}")
            raise

    # ---------- Stats ----------

    async def get_stats(self, db: AsyncSession, owner_id: str) -> Dict[str, int]:
        file_row = (
            await db.execute(
                select(
                    func.count(File.id),
                    func.coalesce(func.sum(File.size_bytes), 0)
                ).where(File.owner_id == owner_id)
            )
        ).one()

        folder_count = await db.scalar(
            select(func.count(Folder.id)).where(Folder.owner_id == owner_id)
        )

        return {
            "total_files": int(file_row[0] or 0),
            "total_folders": int(folder_count or 0),
            "total_size": int(file_row[1] or 0),
        }


# Singleton instance
folder_service = FolderService()
