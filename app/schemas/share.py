from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class ShareLinkCreate(BaseModel):
    file_id: str = Field(..., min_length=1)
    password: Optional[str] = Field(None, min_length=1, max_length=72)
    expires_at: Optional[datetime] = None


class ShareLinkResponse(BaseModel):
    id: str
    file_id: str
    token: str
    share_url: str
    has_password: bool
    expires_at: Optional[datetime] = None
    download_count: int
    is_active: bool
    created_at: datetime


class ShareInfoResponse(BaseModel):
    id: str
    file_name: str
    file_size: int
    mime_type: str
    has_password: bool
    expires_at: Optional[datetime] = None
    is_expired: bool
    download_count: int


class ShareDownloadRequest(BaseModel):
    password: Optional[str] = None


class ShareDownloadResponse(BaseModel):
    download_url: str
    file_name: str
