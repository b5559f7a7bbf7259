import logging
from datetime import datetime, timedelta

from azure.core.exceptions import AzureError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobSasPermissions, ContentSettings, generate_blob_sas
from azure.storage.blob.aio import BlobServiceClient

from docvault.core.config import Settings
from docvault.core.errors import NotFound, StorageFailure
from docvault.storage.base import AccessHandle, BlobStorage

logger = logging.getLogger(__name__)


class AzureBlobStorage(BlobStorage):
    """Azure Blob Storage, ссылки на чтение выдаются через SAS"""

    def __init__(self, settings: Settings, client: BlobServiceClient = None):
        if client is None:
            if not settings.azure_storage_connection_string:
                raise StorageFailure("Azure Storage connection string not configured")
            client = BlobServiceClient.from_connection_string(settings.azure_storage_connection_string)
        self.client = client
        self.container = settings.azure_storage_container
        self._container_ready = False

    async def _container_client(self):
        container_client = self.client.get_container_client(self.container)
        if not self._container_ready:
            try:
                await container_client.create_container()
            except ResourceExistsError:
                pass
            self._container_ready = True
        return container_client

    async def upload(self, key: str, data: bytes, content_type: str = None) -> str:
        try:
            container_client = await self._container_client()
            await container_client.upload_blob(
                key,
                data,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type)
            )
        except AzureError as e:
            logger.error(f"Error uploading {key} to Azure: {e}", exc_info=True)
            raise StorageFailure(f"Failed to upload file {key} to cloud storage") from e

        logger.info(f"Successfully uploaded {key} to Azure")
        return key

    async def fetch(self, blob_ref: str) -> bytes:
        try:
            blob_client = self.client.get_blob_client(self.container, blob_ref)
            stream = await blob_client.download_blob()
            return await stream.readall()
        except ResourceNotFoundError:
            raise NotFound(f"Blob {blob_ref} not found")
        except AzureError as e:
            logger.error(f"Error downloading {blob_ref} from Azure: {e}")
            raise StorageFailure(f"Failed to read file {blob_ref}") from e

    async def delete(self, blob_ref: str) -> None:
        try:
            blob_client = self.client.get_blob_client(self.container, blob_ref)
            await blob_client.delete_blob()
        except ResourceNotFoundError:
            logger.info(f"Blob {blob_ref} already absent in Azure")
        except AzureError as e:
            logger.error(f"Error deleting {blob_ref} from Azure: {e}")
            raise StorageFailure(f"Failed to delete file {blob_ref}") from e

    async def issue_url(self, blob_ref: str, ttl: timedelta, disposition: str = "inline") -> AccessHandle:
        credential = self.client.credential
        account_key = getattr(credential, "account_key", None)
        if not account_key:
            raise StorageFailure("Azure credential cannot sign access URLs")

        expires_at = datetime.utcnow() + ttl
        filename = blob_ref.rsplit("/", 1)[-1]
        sas = generate_blob_sas(
            account_name=self.client.account_name,
            container_name=self.container,
            blob_name=blob_ref,
            account_key=account_key,
            permission=BlobSasPermissions(read=True),
            expiry=expires_at,
            content_disposition=f'{disposition}; filename="{filename}"'
        )
        blob_client = self.client.get_blob_client(self.container, blob_ref)
        return AccessHandle(url=f"{blob_client.url}?{sas}", expires_at=expires_at)

    async def close(self) -> None:
        await self.client.close()
