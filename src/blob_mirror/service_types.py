"""Result types produced by the sync pipeline stages."""

from enum import Enum
from typing import List, Literal

from pydantic import BaseModel, Field

from .storage_models import BlobMeta
from .utils import humanize_size, plural


class DiffStatus(str, Enum):
    """Outcome variant of a container diff."""
    READY = "ready"                  # Diff evaluated every blob
    NOTHING_TO_DO = "nothing_to_do"  # Empty or already-listed container


class ContainerDiff(BaseModel):
    """Blobs of one container that must be copied to the target."""
    container: str
    status: DiffStatus = DiffStatus.READY
    blobs_to_sync: List[BlobMeta] = Field(default_factory=list)
    total_bytes: int = 0
    blobs_checked: int = 0

    @classmethod
    def nothing_to_do(cls, container: str) -> "ContainerDiff":
        """Sentinel diff that downstream stages skip."""
        return cls(container=container, status=DiffStatus.NOTHING_TO_DO)

    @property
    def is_empty(self) -> bool:
        return self.status == DiffStatus.NOTHING_TO_DO or not self.blobs_to_sync


class ContainerReport(BaseModel):
    """Outcome of syncing one container."""
    container: str
    blobs_checked: int = 0
    blobs_to_copy: int = 0
    blobs_copied: int = 0
    bytes_copied: int = 0
    skipped: bool = False  # Diff was NOTHING_TO_DO


class SyncReport(BaseModel):
    """Outcome of a whole sync run."""
    mode: Literal["single", "namespace"]
    dry_run: bool = False
    containers: List[ContainerReport] = Field(default_factory=list)

    @property
    def blobs_checked(self) -> int:
        return sum(c.blobs_checked for c in self.containers)

    @property
    def blobs_to_copy(self) -> int:
        return sum(c.blobs_to_copy for c in self.containers)

    @property
    def blobs_copied(self) -> int:
        return sum(c.blobs_copied for c in self.containers)

    @property
    def bytes_copied(self) -> int:
        return sum(c.bytes_copied for c in self.containers)

    @property
    def summary(self) -> str:
        """One-line human-readable summary."""
        if not self.containers:
            return "No containers to sync"
        head = f"{plural(len(self.containers), 'container')}, {plural(self.blobs_checked, 'blob')} checked"
        if self.dry_run:
            return f"{head}, {self.blobs_to_copy} would be copied"
        return f"{head}, {self.blobs_copied} copied ({humanize_size(self.bytes_copied)})"
