"""Streamed copy of blobs from the source store to the target store."""

import logging
import threading
from typing import Iterable, Iterator, Optional, Tuple

from .guard import GuardKind, IdentityGuard
from .latch import fan_out
from .progress import BYTES, ProgressReporter
from .service_types import ContainerDiff
from .storage.base import ObjectStore
from .storage_models import blob_identity
from .work_queue import BoundedWorkQueue

logger = logging.getLogger(__name__)


class BlobStreamCopier:
    """
    Copies blobs by piping a source read stream into a target write stream.

    A failed copy may leave a partially written blob in the target; nothing
    is cleaned up.
    """

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

    def copy(self, container: str, blob_name: str, progress_task: Optional[int] = None) -> Optional[int]:
        """
        Copy one blob, preserving its content settings.

        Args:
            container: Container holding the blob on both sides
            blob_name: Blob name
            progress_task: Optional byte task advanced per chunk

        Returns:
            Bytes written, or None if this blob's copy was already started
        """
        identity = blob_identity(container, blob_name)
        if not self.guard.try_admit(GuardKind.BLOB_STREAM, identity):
            return None

        meta = self.source.get_blob_metadata(container, blob_name)
        counter = _Counter()
        chunks = self.source.read_blob_stream(container, blob_name)
        self.target.write_blob_stream(
            container,
            blob_name,
            self._track(chunks, counter, progress_task),
            meta.content_settings,
        )
        logger.debug(f"Copied {identity} ({counter.total} bytes)")
        return counter.total

    def copy_all(self, diff: ContainerDiff) -> Tuple[int, int]:
        """
        Copy every blob selected by a diff on the stream-copy queue.

        Returns:
            (blobs copied, bytes written)

        Raises:
            StageError: If any copy fails
        """
        if diff.is_empty:
            return 0, 0

        container = diff.container
        bar = self.progress.start(container, total=diff.total_bytes, unit=BYTES, transient=True)
        counter = _Counter()
        copied = _Counter()

        def record(blob, written: Optional[int]) -> None:
            if written is not None:
                copied.add(1)
                counter.add(written)

        try:
            fan_out(
                self.queue,
                diff.blobs_to_sync,
                lambda blob: self.copy(container, blob.name, bar),
                stage="blob copy",
                identify=lambda b: b.identity,
                on_result=record,
            )
        finally:
            self.progress.finish(bar)

        logger.info(f"{container}: copied {copied.total} blobs ({counter.total} bytes)")
        return copied.total, counter.total

    def _track(
        self,
        chunks: Iterable[bytes],
        counter: "_Counter",
        progress_task: Optional[int],
    ) -> Iterator[bytes]:
        for chunk in chunks:
            counter.add(len(chunk))
            if progress_task is not None:
                self.progress.advance(progress_task, len(chunk))
            yield chunk


class _Counter:
    """Thread-safe running total."""

    def __init__(self):
        self._lock = threading.Lock()
        self.total = 0

    def add(self, amount: int) -> None:
        with self._lock:
            self.total += amount

