"""End-to-end tests for the pipeline driver on filesystem stores."""

from unittest.mock import patch

import pytest

from blob_mirror.config import ConcurrencyLimits, SyncSettings
from blob_mirror.constants import NAMESPACE_PROGRESS_LABEL
from blob_mirror.copier import BlobStreamCopier
from blob_mirror.errors import StageError, TransferError
from blob_mirror.pipeline import PipelineDriver
from blob_mirror.resolver import ContainerArgument


def _files(store, container):
    base = store.root / container
    return {
        p.relative_to(base).as_posix(): p.read_bytes()
        for p in base.rglob("*")
        if p.is_file()
    }


@pytest.fixture
def populated(source, target, put_blob, make_container):
    """Source namespace with a mix of eligible and ineligible containers."""
    put_blob(source, "proj-1", "index.html", b"<html></html>")
    put_blob(source, "proj-1", "img/logo.png", b"\x89PNG")
    put_blob(source, "proj-2", "a.bin", b"x" * 100)
    put_blob(source, "proj-2", "b.bin", b"y" * 50)
    put_blob(target, "proj-2", "a.bin", b"x" * 100)
    put_blob(target, "proj-2", "b.bin", b"stale")
    make_container(source, "proj-3")
    put_blob(source, "assets", "skip.txt", b"not eligible")
    return source, target


class TestNamespaceSync:
    """Test whole-namespace runs."""

    def test_mirrors_eligible_containers(self, populated, progress):
        source, target = populated

        with PipelineDriver(source, target, progress=progress) as driver:
            report = driver.run(ContainerArgument())

        assert report.mode == "namespace"
        assert [c.container for c in report.containers] == ["proj-1", "proj-2", "proj-3"]
        assert _files(target, "proj-1") == _files(source, "proj-1")
        assert _files(target, "proj-2") == _files(source, "proj-2")
        assert (target.root / "proj-3").is_dir()
        assert not (target.root / "assets").exists()

        by_name = {c.container: c for c in report.containers}
        assert by_name["proj-1"].blobs_copied == 2
        assert by_name["proj-2"].blobs_copied == 1
        assert by_name["proj-2"].bytes_copied == 50
        assert by_name["proj-3"].skipped
        assert report.blobs_copied == 3

        bar = progress.task_named(NAMESPACE_PROGRESS_LABEL)
        assert progress.totals[bar] == 3
        assert progress.completed[bar] == 3

    def test_second_run_copies_nothing(self, populated):
        source, target = populated

        with PipelineDriver(source, target) as driver:
            driver.run(ContainerArgument())
        with PipelineDriver(source, target) as driver:
            report = driver.run(ContainerArgument())

        assert report.blobs_copied == 0
        assert report.blobs_checked == 4

    def test_resume_from_ordinal(self, populated):
        source, target = populated

        with PipelineDriver(source, target) as driver:
            report = driver.run(ContainerArgument(resume_from=2))

        assert [c.container for c in report.containers] == ["proj-2", "proj-3"]
        assert not (target.root / "proj-1").exists()

    def test_no_eligible_containers(self, source, target, put_blob):
        put_blob(source, "assets", "a.txt")

        with PipelineDriver(source, target) as driver:
            report = driver.run(ContainerArgument())

        assert report.containers == []
        assert report.summary == "No containers to sync"

    def test_concurrency_ceilings_respected(self, source, target, put_blob):
        for c in range(6):
            for b in range(8):
                put_blob(source, f"proj-{c}", f"{b}.bin", bytes([b]) * 64)
        settings = SyncSettings(concurrency=ConcurrencyLimits(
            container_creation=2, existence_check=3, stream_copy=2, container_sync=2,
        ))

        with PipelineDriver(source, target, settings) as driver:
            report = driver.run(ContainerArgument())
            queues = driver.queues

        assert report.blobs_copied == 48
        assert queues.container_creation.peak <= 2
        assert queues.existence_check.peak <= 3
        assert queues.stream_copy.peak <= 2
        assert queues.container_sync.peak <= 2

    def test_empty_container_never_copies(self, source, target, make_container):
        make_container(source, "proj-1")

        with patch.object(BlobStreamCopier, "copy") as copy:
            with PipelineDriver(source, target) as driver:
                report = driver.run(ContainerArgument())

        copy.assert_not_called()
        assert report.containers[0].skipped

    def test_copy_failure_propagates(self, populated):
        source, target = populated

        with patch.object(BlobStreamCopier, "copy", side_effect=TransferError("network down")):
            with pytest.raises(StageError) as exc_info:
                with PipelineDriver(source, target) as driver:
                    driver.run(ContainerArgument())

        # Outermost stage wraps the failing container's own stage error
        error = exc_info.value
        assert error.stage == "container sync"
        assert isinstance(error.__cause__, StageError)
        assert error.__cause__.stage == "blob copy"

    def test_dry_run_changes_nothing(self, populated):
        source, target = populated

        with PipelineDriver(source, target, dry_run=True) as driver:
            report = driver.run(ContainerArgument())

        assert report.dry_run
        assert report.blobs_to_copy == 3
        assert report.blobs_copied == 0
        assert not (target.root / "proj-1").exists()
        assert _files(target, "proj-2")["b.bin"] == b"stale"
        assert "would be copied" in report.summary


class TestSingleContainerSync:
    """Test runs naming one container."""

    def test_syncs_only_named_container(self, populated):
        source, target = populated

        with PipelineDriver(source, target) as driver:
            report = driver.run(ContainerArgument(container="proj-2"))

        assert report.mode == "single"
        assert len(report.containers) == 1
        assert report.containers[0].blobs_copied == 1
        assert _files(target, "proj-2")["b.bin"] == b"y" * 50
        assert not (target.root / "proj-1").exists()

    def test_creates_missing_target_container(self, populated):
        source, target = populated

        with PipelineDriver(source, target) as driver:
            driver.run(ContainerArgument(container="proj-1"))

        assert _files(target, "proj-1") == _files(source, "proj-1")

    def test_ineligible_name_is_allowed(self, populated):
        """Single-container mode does not apply the name pattern."""
        source, target = populated

        with PipelineDriver(source, target) as driver:
            driver.run(ContainerArgument(container="assets"))

        assert _files(target, "assets") == {"skip.txt": b"not eligible"}
