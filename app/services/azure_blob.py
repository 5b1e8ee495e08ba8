from azure.storage.blob import BlobSasPermissions, generate_blob_sas
from app.core.config import settings
from app.core.exceptions import ValidationFailed
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import quote, urlsplit
import logging

logger = logging.getLogger(__name__)


class AzureBlobService:
    """
    Builds object paths and download URLs for files kept in Azure Blob Storage.

    Uploads go straight from the client to the blob store; this service never
    reads or writes file content.
    """

    def __init__(
        self,
        account_name: Optional[str] = None,
        account_key: Optional[str] = None,
        container: Optional[str] = None
    ):
        self.account_name = account_name if account_name is not None else settings.AZURE_STORAGE_ACCOUNT_NAME
        self.account_key = account_key if account_key is not None else settings.AZURE_STORAGE_ACCOUNT_KEY
        self.container = container or settings.FILES_CONTAINER

    @property
    def is_configured(self) -> bool:
        return bool(self.account_name and self.account_key)

    @property
    def container_url(self) -> str:
        return f"https://{self.account_name}.blob.core.windows.net/{self.container}"

    def normalize_object_path(self, object_path: str) -> str:
        """
        Reduce an uploaded object's URL or path to its blob name.

        Accepts a full container URL (query string dropped) or a bare blob
        name, with or without a leading slash.
        """
        path = (object_path or "").strip()

        if path.startswith("https://") or path.startswith("http://"):
            parts = urlsplit(path)
            path = parts.path
            if self.account_name and parts.netloc == f"{self.account_name}.blob.core.windows.net":
                container_prefix = f"/{self.container}/"
                if path.startswith(container_prefix):
                    path = path[len(container_prefix):]

        path = path.lstrip("/")

        if not path or any(segment in ("", ".", "..") for segment in path.split("/")):
            raise ValidationFailed("Invalid object path")

        return path

    def get_blob_url(self, blob_name: str) -> str:
        """Get the URL of a blob."""
        return f"{self.container_url}/{quote(blob_name)}"

    def build_download_url(self, object_path: str, file_name: Optional[str] = None) -> str:
        """
        Turn a stored object path into the redirect target for a download.

        With account credentials configured this is a short-lived read-only
        SAS URL; otherwise the stored path is returned unchanged.
        """
        if not self.is_configured:
            return object_path

        expiry = datetime.now(timezone.utc) + timedelta(minutes=settings.DOWNLOAD_URL_EXPIRE_MINUTES)
        content_disposition = None
        if file_name:
            content_disposition = f'attachment; filename="{file_name}"'

        try:
            sas_token = generate_blob_sas(
                account_name=self.account_name,
                container_name=self.container,
                blob_name=object_path,
                account_key=self.account_key,
                permission=BlobSasPermissions(read=True),
                expiry=expiry,
                content_disposition=content_disposition
            )
        except Exception as e:
            logger.error(f"Error generating SAS for blob {object_path}: {str(e)}")
            raise

        return f"{self.get_blob_url(object_path)}?{sas_token}"


# Singleton instance
blob_service = AzureBlobService()
