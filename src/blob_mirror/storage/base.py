"""Base protocol for object store implementations."""

from typing import Iterable, Iterator, List, Protocol

from ..storage_models import (
    AccessPolicy,
    BlobMeta,
    ContainerInfo,
    ContentSettings,
    ExistsResult,
)


class ObjectStore(Protocol):
    """
    Protocol for the object stores the sync pipeline reads from and writes to.

    Implementations must be safe to call from many threads at once: the
    pipeline shares one source and one target instance across all of its
    worker pools.
    """

    def list_containers(self) -> List[ContainerInfo]:
        """
        List every container in the store.

        Returns:
            Containers in the store's listing order
        """
        ...

    def list_blobs(self, container: str) -> List[BlobMeta]:
        """
        List every blob in a container.

        Args:
            container: Container name

        Raises:
            ContainerNotFoundError: If the container does not exist
        """
        ...

    def blob_exists(self, container: str, name: str) -> ExistsResult:
        """
        Check whether a blob exists and report its content hash.

        A missing blob or missing container is ``exists=False``, not an error.
        """
        ...

    def get_blob_metadata(self, container: str, name: str) -> BlobMeta:
        """
        Fetch full metadata, including content settings, for one blob.

        Raises:
            BlobNotFoundError: If the blob does not exist
        """
        ...

    def create_container_if_absent(self, container: str, access: AccessPolicy) -> bool:
        """
        Create a container unless it already exists.

        An existing container is left untouched, whatever its access policy.

        Returns:
            True if the container was created
        """
        ...

    def read_blob_stream(self, container: str, name: str) -> Iterator[bytes]:
        """
        Open a read stream over a blob's bytes.

        Returns:
            Iterator of byte chunks
        """
        ...

    def write_blob_stream(
        self,
        container: str,
        name: str,
        chunks: Iterable[bytes],
        content_settings: ContentSettings,
    ) -> None:
        """
        Write a blob from a stream of byte chunks, replacing any existing blob.

        Args:
            container: Target container name
            name: Target blob name
            chunks: Byte chunks, consumed in order
            content_settings: Content properties to store with the blob
        """
        ...
