"""Storage-related data models shared by the object stores and the pipeline.

These are transient, pipeline-local values: nothing here is persisted by
blob-mirror itself.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AccessPolicy(str, Enum):
    """Public access level of a container."""
    PRIVATE = "private"      # No anonymous access
    BLOB = "blob"            # Anonymous read of blobs only
    CONTAINER = "container"  # Anonymous read of blobs and listing


class ContainerInfo(BaseModel):
    """A container in an object store."""
    name: str
    public_access: Optional[AccessPolicy] = None


class ContentSettings(BaseModel):
    """HTTP content properties preserved when a blob is copied."""
    content_type: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None
    content_disposition: Optional[str] = None
    cache_control: Optional[str] = None
    content_md5: Optional[str] = None  # base64, as stored by Azure


class BlobMeta(BaseModel):
    """
    Metadata for a blob.

    Two blobs hold the same content iff their ``content_hash`` values are
    equal. ``content_length`` is advisory and only sizes progress bars.
    """
    container: str
    name: str
    content_length: int = 0
    content_hash: Optional[str] = None
    content_settings: ContentSettings = Field(default_factory=ContentSettings)

    @property
    def identity(self) -> str:
        """Run-unique identity of the blob."""
        return blob_identity(self.container, self.name)


class ExistsResult(BaseModel):
    """
    Result of a target existence check.

    Absent: ``exists=False``. Present without comparable metadata:
    ``exists=True`` and ``content_hash=None``.
    """
    exists: bool
    content_hash: Optional[str] = None


def blob_identity(container: str, name: str) -> str:
    """Build the identity string used to deduplicate per-blob operations."""
    return f"{container}/{name}"
