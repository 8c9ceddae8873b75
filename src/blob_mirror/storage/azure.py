"""Azure Blob Storage implementation."""

import logging
from typing import Iterable, Iterator, List, Optional

from azure.core.credentials import AzureNamedKeyCredential
from azure.core.exceptions import AzureError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, BlobType
from azure.storage.blob import ContentSettings as AzureContentSettings

from ..constants import DEFAULT_CHUNK_SIZE
from ..errors import (
    BlobNotFoundError,
    ContainerNotFoundError,
    StorageError,
    TransferError,
)
from ..hashing import decode_md5, encode_md5
from ..storage_models import (
    AccessPolicy,
    BlobMeta,
    ContainerInfo,
    ContentSettings,
    ExistsResult,
)

logger = logging.getLogger(__name__)


class AzureObjectStore:
    """
    Azure Blob Storage implementation of the object store protocol.

    One ``BlobServiceClient`` is shared by every worker thread; the SDK's
    sync clients are safe for concurrent use.
    """

    def __init__(
        self,
        account_name: Optional[str] = None,
        account_key: Optional[str] = None,
        connection_string: Optional[str] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """
        Initialize Azure object store.

        Args:
            account_name: Storage account name
            account_key: Storage account key
            connection_string: Connection string (takes precedence)
            chunk_size: Download chunk size in bytes

        Raises:
            ValueError: If neither connection_string nor account credentials provided
        """
        if connection_string:
            self.client = BlobServiceClient.from_connection_string(
                connection_string,
                max_chunk_get_size=chunk_size,
            )
        elif account_name and account_key:
            self.client = BlobServiceClient(
                account_url=f"https://{account_name}.blob.core.windows.net",
                credential=AzureNamedKeyCredential(account_name, account_key),
                max_chunk_get_size=chunk_size,
            )
        else:
            raise ValueError("Provide either connection_string or account_name/account_key")

        self.account_name = self.client.account_name

    def list_containers(self) -> List[ContainerInfo]:
        try:
            return [
                ContainerInfo(
                    name=props.name,
                    public_access=_access_policy(props.public_access),
                )
                for props in self.client.list_containers()
            ]
        except AzureError as e:
            raise StorageError(f"Failed to list containers in {self.account_name}: {e}") from e

    def list_blobs(self, container: str) -> List[BlobMeta]:
        container_client = self.client.get_container_client(container)
        try:
            return [
                _blob_meta(container, props)
                for props in container_client.list_blobs()
            ]
        except ResourceNotFoundError as e:
            raise ContainerNotFoundError(container) from e
        except AzureError as e:
            raise StorageError(f"Failed to list blobs in {container}: {e}") from e

    def blob_exists(self, container: str, name: str) -> ExistsResult:
        blob_client = self.client.get_blob_client(container=container, blob=name)
        try:
            props = blob_client.get_blob_properties()
        except ResourceNotFoundError:
            return ExistsResult(exists=False)
        except AzureError as e:
            raise StorageError(f"Failed to check {container}/{name}: {e}") from e

        return ExistsResult(
            exists=True,
            content_hash=encode_md5(props.content_settings.content_md5),
        )

    def get_blob_metadata(self, container: str, name: str) -> BlobMeta:
        blob_client = self.client.get_blob_client(container=container, blob=name)
        try:
            props = blob_client.get_blob_properties()
        except ResourceNotFoundError as e:
            raise BlobNotFoundError(container, name) from e
        except AzureError as e:
            raise StorageError(f"Failed to read properties of {container}/{name}: {e}") from e

        return _blob_meta(container, props)

    def create_container_if_absent(self, container: str, access: AccessPolicy) -> bool:
        container_client = self.client.get_container_client(container)
        public_access = None if access == AccessPolicy.PRIVATE else access.value
        try:
            container_client.create_container(public_access=public_access)
        except ResourceExistsError:
            return False
        except AzureError as e:
            raise StorageError(f"Failed to create container {container}: {e}") from e

        logger.info(f"Created container {container} in {self.account_name}")
        return True

    def read_blob_stream(self, container: str, name: str) -> Iterator[bytes]:
        blob_client = self.client.get_blob_client(container=container, blob=name)
        try:
            downloader = blob_client.download_blob(max_concurrency=1)
        except ResourceNotFoundError as e:
            raise BlobNotFoundError(container, name) from e
        except AzureError as e:
            raise TransferError(f"Failed to open {container}/{name}: {e}") from e

        return self._iter_chunks(downloader, container, name)

    def write_blob_stream(
        self,
        container: str,
        name: str,
        chunks: Iterable[bytes],
        content_settings: ContentSettings,
    ) -> None:
        blob_client = self.client.get_blob_client(container=container, blob=name)
        try:
            blob_client.upload_blob(
                chunks,
                blob_type=BlobType.BLOCKBLOB,
                overwrite=True,
                content_settings=_azure_content_settings(content_settings),
            )
        except ResourceNotFoundError as e:
            raise ContainerNotFoundError(container) from e
        except AzureError as e:
            raise TransferError(f"Failed to write {container}/{name}: {e}") from e

    def _iter_chunks(self, downloader, container: str, name: str) -> Iterator[bytes]:
        try:
            for chunk in downloader.chunks():
                yield chunk
        except AzureError as e:
            raise TransferError(f"Failed to read {container}/{name}: {e}") from e


def _access_policy(value) -> Optional[AccessPolicy]:
    """Map the SDK's public access value (None, "blob", "container") to AccessPolicy."""
    if not value:
        return AccessPolicy.PRIVATE
    return AccessPolicy(str(getattr(value, "value", value)).lower())


def _blob_meta(container: str, props) -> BlobMeta:
    """Build BlobMeta from an SDK ``BlobProperties``."""
    settings = props.content_settings
    content_md5 = encode_md5(settings.content_md5)
    return BlobMeta(
        container=container,
        name=props.name,
        content_length=props.size or 0,
        content_hash=content_md5,
        content_settings=ContentSettings(
            content_type=settings.content_type,
            content_encoding=settings.content_encoding,
            content_language=settings.content_language,
            content_disposition=settings.content_disposition,
            cache_control=settings.cache_control,
            content_md5=content_md5,
        ),
    )


def _azure_content_settings(settings: ContentSettings):
    """Build the SDK ``ContentSettings`` for an upload."""
    return AzureContentSettings(
        content_type=settings.content_type,
        content_encoding=settings.content_encoding,
        content_language=settings.content_language,
        content_disposition=settings.content_disposition,
        cache_control=settings.cache_control,
        content_md5=decode_md5(settings.content_md5),
    )
