from app.schemas.folder import FolderCreate, FolderResponse
from app.schemas.file import FileCreate, FileResponse, StorageStats
from app.schemas.share import (
    ShareLinkCreate,
    ShareLinkResponse,
    ShareInfoResponse,
    ShareDownloadRequest,
    ShareDownloadResponse,
)

__all__ = [
    "FolderCreate",
    "FolderResponse",
    "FileCreate",
    "FileResponse",
    "StorageStats",
    "ShareLinkCreate",
    "ShareLinkResponse",
    "ShareInfoResponse",
    "ShareDownloadRequest",
    "ShareDownloadResponse",
]
