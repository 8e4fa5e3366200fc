"""Azure Blob Storage access for reference photos and rendered thumbnails.

Both containers are created with anonymous blob read access: the blob URL
returned by an upload is the public URL stored on the row.
"""

import re
import time
from typing import BinaryIO
from uuid import UUID

from azure.core.exceptions import (
    ResourceExistsError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.identity import DefaultAzureCredential
from azure.storage.blob import BlobServiceClient, ContentSettings
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import StorageSettings, get_settings
from ..logging import get_logger

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

# Transport failures only; a missing blob or a 4xx answer is final.
_transient_retry = retry(
    retry=retry_if_exception_type((ServiceRequestError, ServiceResponseError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def sanitize_filename(filename: str | None) -> str:
    """Reduce a client-supplied filename to a blob-safe name."""
    name = (filename or "").rsplit("/", 1)[-1].rsplit("\\", 1)[-1]
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "image"


def reference_image_path(owner_id: str, index: int, filename: str | None) -> str:
    """Blob name for an uploaded reference photo.

    Layout: ``{owner_id}/{epoch_ms}_{index}_{filename}``
    """
    return f"{owner_id}/{_epoch_ms()}_{index}_{sanitize_filename(filename)}"


def thumbnail_path(owner_id: str, concept_id: UUID | str) -> str:
    """Blob name for a rendered thumbnail.

    Layout: ``{owner_id}/{concept_id}_{epoch_ms}.png``
    """
    return f"{owner_id}/{concept_id}_{_epoch_ms()}.png"


class BlobClient:
    """Synchronous storage client, connected on first use."""

    def __init__(self, settings: StorageSettings | None = None):
        self.settings = settings or get_settings().storage
        self._service: BlobServiceClient | None = None
        self._ready_containers: set[str] = set()

    def _connect(self) -> BlobServiceClient:
        if self.settings.use_managed_identity:
            if not self.settings.account_url:
                raise ValueError("AZURE_STORAGE_ACCOUNT_URL is required with managed identity")
            return BlobServiceClient(
                self.settings.account_url, credential=DefaultAzureCredential()
            )
        if not self.settings.connection_string:
            raise ValueError(
                "Azure Storage connection string not found. Set AZURE_STORAGE_CONNECTION_STRING"
            )
        return BlobServiceClient.from_connection_string(self.settings.connection_string)

    @property
    def service(self) -> BlobServiceClient:
        if self._service is None:
            self._service = self._connect()
        return self._service

    def ensure_container(self, container_name: str) -> None:
        if container_name in self._ready_containers:
            return
        try:
            self.service.get_container_client(container_name).create_container(
                public_access="blob"
            )
            logger.info("Created storage container", container=container_name)
        except ResourceExistsError:
            pass
        self._ready_containers.add(container_name)

    @_transient_retry
    def upload_blob(
        self,
        container_name: str,
        blob_name: str,
        content: bytes | BinaryIO,
        content_type: str = "application/octet-stream",
        overwrite: bool = False,
    ) -> str:
        """Store ``content`` and return its URL."""
        self.ensure_container(container_name)
        blob = self.service.get_blob_client(container_name, blob_name)
        blob.upload_blob(
            content,
            content_settings=ContentSettings(content_type=content_type),
            overwrite=overwrite,
        )
        return blob.url

    @_transient_retry
    def download_blob(self, container_name: str, blob_name: str) -> bytes:
        """Read a whole blob.

        Raises:
            ResourceNotFoundError: If the blob doesn't exist.
        """
        return self.service.get_blob_client(container_name, blob_name).download_blob().readall()

    @_transient_retry
    def delete_blob(self, container_name: str, blob_name: str) -> None:
        """Remove a blob; a blob that is already gone is not an error."""
        try:
            self.service.get_blob_client(container_name, blob_name).delete_blob()
        except ResourceNotFoundError:
            logger.debug("Blob already deleted", container=container_name, blob=blob_name)

    def close(self) -> None:
        if self._service is not None:
            self._service.close()
            self._service = None


_blob_client: BlobClient | None = None


def get_blob_client() -> BlobClient:
    """Process-wide client; also the FastAPI dependency."""
    global _blob_client
    if _blob_client is None:
        _blob_client = BlobClient()
    return _blob_client
