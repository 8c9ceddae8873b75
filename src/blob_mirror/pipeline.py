"""Pipeline driver composing the resolve, diff and copy stages."""

import logging
from typing import Dict, Optional

from .config import SyncSettings
from .constants import NAMESPACE_PROGRESS_LABEL
from .copier import BlobStreamCopier
from .diffing import BlobDiffEngine
from .guard import IdentityGuard
from .latch import fan_out
from .progress import NullProgressReporter, ProgressReporter
from .resolver import ContainerArgument, ContainerResolver
from .service_types import ContainerReport, DiffStatus, SyncReport
from .storage.base import ObjectStore
from .storage_models import ContainerInfo
from .work_queue import StageQueues

logger = logging.getLogger(__name__)


class PipelineDriver:
    """
    Runs one sync pass from a source store to a target store.

    The driver owns everything scoped to the run: the identity guard and the
    four stage queues. Use it as a context manager so the queues are shut
    down when the run ends; after a failure, queued tasks that have not
    started are cancelled.

    Stages per container: diff (existence checks fan out on the
    existence-check queue) then copy (streams fan out on the stream-copy
    queue). In namespace mode, containers themselves fan out on the
    container-sync queue after the resolver has ensured their targets.
    """

    def __init__(
        self,
        source: ObjectStore,
        target: ObjectStore,
        settings: Optional[SyncSettings] = None,
        progress: Optional[ProgressReporter] = None,
        dry_run: bool = False,
    ):
        self.source = source
        self.target = target
        self.settings = settings or SyncSettings()
        self.progress = progress or NullProgressReporter()
        self.dry_run = dry_run

        self.guard = IdentityGuard()
        self.queues = StageQueues.from_limits(self.settings.concurrency)
        self.differ = BlobDiffEngine(
            source, target, self.guard, self.queues.existence_check, self.progress
        )
        self.copier = BlobStreamCopier(
            source, target, self.guard, self.queues.stream_copy, self.progress
        )

    def run(self, argument: ContainerArgument) -> SyncReport:
        """Dispatch to single-container or whole-namespace mode."""
        if argument.single:
            if not self.dry_run:
                self._resolver().ensure_target(ContainerInfo(name=argument.container))
            report = self.sync_container(argument.container)
            return SyncReport(mode="single", dry_run=self.dry_run, containers=[report])
        return self.sync_namespace(resume_from=argument.resume_from)

    def sync_container(self, container: str) -> ContainerReport:
        """
        Diff and copy one container.

        Raises:
            StageError: If an existence check or a copy fails
            StorageError: If the container cannot be listed
        """
        diff = self.differ.diff(container)
        if diff.status == DiffStatus.NOTHING_TO_DO:
            return ContainerReport(container=container, skipped=True)

        report = ContainerReport(
            container=container,
            blobs_checked=diff.blobs_checked,
            blobs_to_copy=len(diff.blobs_to_sync),
        )
        if self.dry_run:
            for blob in diff.blobs_to_sync:
                logger.info(f"Dry run: would copy {blob.identity} ({blob.content_length} bytes)")
            return report

        report.blobs_copied, report.bytes_copied = self.copier.copy_all(diff)
        return report

    def sync_namespace(self, resume_from: int = 0) -> SyncReport:
        """
        Sync every eligible container, at most ``container_sync`` at a time.

        Returns only after every container has finished.

        Raises:
            StageError: If a container creation or a container sync fails
        """
        containers = self._resolver(resume_from).resolve_sync_set()
        if not containers:
            return SyncReport(mode="namespace", dry_run=self.dry_run)

        reports: Dict[str, ContainerReport] = {}
        bar = self.progress.start(NAMESPACE_PROGRESS_LABEL, total=len(containers))

        def record(container: ContainerInfo, report: ContainerReport) -> None:
            reports[container.name] = report
            self.progress.advance(bar)

        try:
            fan_out(
                self.queues.container_sync,
                containers,
                lambda c: self.sync_container(c.name),
                stage="container sync",
                identify=lambda c: c.name,
                on_result=record,
            )
        finally:
            self.progress.finish(bar)

        return SyncReport(
            mode="namespace",
            dry_run=self.dry_run,
            containers=[reports[c.name] for c in containers],
        )

    def _resolver(self, resume_from: int = 0) -> ContainerResolver:
        return ContainerResolver(
            self.source,
            self.target,
            self.guard,
            self.queues.container_creation,
            prefix=self.settings.container_prefix,
            resume_from=resume_from,
            dry_run=self.dry_run,
        )

    def close(self, cancel_pending: bool = False) -> None:
        self.queues.shutdown(wait=True, cancel_pending=cancel_pending)

    def __enter__(self) -> "PipelineDriver":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close(cancel_pending=exc_type is not None)
