"""Diff computation: which blobs of a container must be copied."""

import logging
import threading
from typing import List, Optional

from .guard import GuardKind, IdentityGuard
from .latch import fan_out
from .progress import ProgressReporter
from .service_types import ContainerDiff, DiffStatus
from .storage.base import ObjectStore
from .storage_models import BlobMeta, ExistsResult
from .work_queue import BoundedWorkQueue

logger = logging.getLogger(__name__)


def decide_sync(blob: BlobMeta, existing: ExistsResult) -> bool:
    """
    Decide whether a source blob must be copied to the target.

    Args:
        blob: Source blob metadata
        existing: Target existence check result

    Returns:
        True if absent in target, or present with a different content hash

    Note:
        A missing hash on either side compares as different, so blobs with
        incomplete metadata are copied rather than trusted.
    """
    if not existing.exists:
        return True
    if blob.content_hash is None or existing.content_hash is None:
        return True
    return blob.content_hash != existing.content_hash


class BlobDiffEngine:
    """Computes the blobs of a container that are missing or stale in the target."""

    def __init__(
        self,
        source: ObjectStore,
        target: ObjectStore,
        guard: IdentityGuard,
        queue: BoundedWorkQueue,
        progress: ProgressReporter,
    ):
        self.source = source
        self.target = target
        self.guard = guard
        self.queue = queue
        self.progress = progress

    def diff(self, container: str) -> ContainerDiff:
        """
        Diff one container against the target.

        Existence checks run on the existence-check queue in any order; the
        result is built only after every blob has been evaluated.

        Args:
            container: Container name

        Returns:
            ContainerDiff, or the NOTHING_TO_DO sentinel for an empty
            container or one whose listing was already requested

        Raises:
            StageError: If an existence check fails
        """
        if not self.guard.try_admit(GuardKind.CONTAINER_LISTING, container):
            return ContainerDiff.nothing_to_do(container)

        blobs = self.source.list_blobs(container)
        if not blobs:
            logger.info(f"{container}: no blobs, nothing to do")
            return ContainerDiff.nothing_to_do(container)

        lock = threading.Lock()
        selected: List[BlobMeta] = []
        bar = self.progress.start(container, total=len(blobs), transient=True)

        def record(blob: BlobMeta, existing: Optional[ExistsResult]) -> None:
            self.progress.advance(bar)
            if existing is None:
                return
            if decide_sync(blob, existing):
                logger.debug(f"{blob.identity}: must copy")
                with lock:
                    selected.append(blob)
            else:
                logger.debug(f"{blob.identity}: up to date")

        try:
            fan_out(
                self.queue,
                blobs,
                self.check,
                stage="existence check",
                identify=lambda b: b.identity,
                on_result=record,
            )
        finally:
            self.progress.finish(bar)

        # Keep source listing order regardless of completion order
        order = {b.name: i for i, b in enumerate(blobs)}
        selected.sort(key=lambda b: order[b.name])

        total_bytes = sum(b.content_length for b in selected)
        logger.info(
            f"{container}: {len(selected)} of {len(blobs)} blobs to copy ({total_bytes} bytes)"
        )
        return ContainerDiff(
            container=container,
            status=DiffStatus.READY,
            blobs_to_sync=selected,
            total_bytes=total_bytes,
            blobs_checked=len(blobs),
        )

    def check(self, blob: BlobMeta) -> Optional[ExistsResult]:
        """Check one blob in the target.

        Returns:
            The existence result, or None if this blob was already checked
        """
        if not self.guard.try_admit(GuardKind.EXISTENCE_CHECK, blob.identity):
            return None
        return self.target.blob_exists(blob.container, blob.name)
