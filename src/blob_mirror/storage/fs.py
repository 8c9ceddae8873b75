"""Filesystem object store for tests and local dry runs."""

import logging
import mimetypes
from pathlib import Path
from typing import Iterable, Iterator, List

from ..errors import BlobNotFoundError, ContainerNotFoundError, TransferError
from ..hashing import compute_content_md5
from ..storage_models import (
    AccessPolicy,
    BlobMeta,
    ContainerInfo,
    ContentSettings,
    ExistsResult,
)

logger = logging.getLogger(__name__)


class FilesystemObjectStore:
    """
    Local filesystem store (avoids an Azurite dependency in tests).

    Containers are directories directly under ``root``; blobs are files below
    them, with ``/`` in blob names mapping to subdirectories. Content hashes
    are the base64 MD5 of the file bytes, the same form Azure reports.
    Access policies are accepted but not enforced.
    """

    def __init__(self, root: Path, chunk_size: int = 64 * 1024):
        """
        Initialize filesystem store.

        Args:
            root: Directory holding one subdirectory per container
            chunk_size: Read size for blob streams
        """
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.chunk_size = chunk_size

    def list_containers(self) -> List[ContainerInfo]:
        return [
            ContainerInfo(name=p.name)
            for p in sorted(self.root.iterdir())
            if p.is_dir()
        ]

    def list_blobs(self, container: str) -> List[BlobMeta]:
        base = self._container_dir(container)
        if not base.is_dir():
            raise ContainerNotFoundError(container)

        return [
            self._meta(container, path.relative_to(base).as_posix(), path)
            for path in sorted(base.rglob("*"))
            if path.is_file()
        ]

    def blob_exists(self, container: str, name: str) -> ExistsResult:
        path = self._blob_path(container, name)
        if not path.is_file():
            return ExistsResult(exists=False)
        return ExistsResult(exists=True, content_hash=compute_content_md5(path))

    def get_blob_metadata(self, container: str, name: str) -> BlobMeta:
        path = self._blob_path(container, name)
        if not path.is_file():
            raise BlobNotFoundError(container, name)
        return self._meta(container, name, path)

    def create_container_if_absent(self, container: str, access: AccessPolicy) -> bool:
        path = self._container_dir(container)
        if path.is_dir():
            return False
        path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Created container {container} (access={access.value})")
        return True

    def read_blob_stream(self, container: str, name: str) -> Iterator[bytes]:
        path = self._blob_path(container, name)
        if not path.is_file():
            raise BlobNotFoundError(container, name)
        return self._iter_file(path)

    def write_blob_stream(
        self,
        container: str,
        name: str,
        chunks: Iterable[bytes],
        content_settings: ContentSettings,
    ) -> None:
        base = self._container_dir(container)
        if not base.is_dir():
            raise ContainerNotFoundError(container)

        dest = self._blob_path(container, name)
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(dest, "wb") as f:
                for chunk in chunks:
                    f.write(chunk)
        except OSError as e:
            raise TransferError(f"Failed to write {container}/{name}: {e}") from e

    def _iter_file(self, path: Path) -> Iterator[bytes]:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(self.chunk_size), b""):
                yield chunk

    def _meta(self, container: str, name: str, path: Path) -> BlobMeta:
        content_hash = compute_content_md5(path)
        content_type, content_encoding = mimetypes.guess_type(name)
        return BlobMeta(
            container=container,
            name=name,
            content_length=path.stat().st_size,
            content_hash=content_hash,
            content_settings=ContentSettings(
                content_type=content_type or "application/octet-stream",
                content_encoding=content_encoding,
                content_md5=content_hash,
            ),
        )

    def _container_dir(self, container: str) -> Path:
        if not container or "/" in container or container in (".", ".."):
            raise ValueError(f"Invalid container name: {container!r}")
        return self.root / container

    def _blob_path(self, container: str, name: str) -> Path:
        """Resolve a blob name to a path, refusing names that escape the container."""
        base = self._container_dir(container).resolve()
        path = (base / name).resolve()
        if base != path and base not in path.parents:
            raise ValueError(f"Blob name escapes container: {name!r}")
        return path
