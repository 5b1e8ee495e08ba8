from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class FileCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    size_bytes: int = Field(..., ge=0)
    mime_type: str = Field(..., min_length=1, max_length=255)
    object_path: str = Field(..., min_length=1)
    folder_id: Optional[str] = None


class FileResponse(BaseModel):
    id: str
    name: str
    size_bytes: int
    mime_type: str
    object_path: str
    folder_id: Optional[str] = None
    owner_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class StorageStats(BaseModel):
    total_files: int
    total_folders: int
    total_size: int
